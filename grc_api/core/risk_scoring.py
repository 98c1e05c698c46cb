"""
Risk Scoring Engine

Residual risk model used across the platform:

    residual = inherent x (1 - control_effectiveness / 100)

The residual is rounded to a 0-100 integer score and bucketed into five
fixed categories (Critical >= 80, High >= 60, Medium >= 40, Low >= 20,
Minimal below that). Travel risk uses a fixed weighted sum of four 0-100
factors. Everything here is pure arithmetic: same input, same output.
"""

import math

from grc_api.models.schemas import (
    PortfolioRiskSummary,
    RiskCategory,
    RiskEntity,
    RiskScore,
    TravelRiskFactors,
    TravelRiskScore,
)

# Lower bounds, checked top-down. Inclusive.
CATEGORY_THRESHOLDS: list[tuple[int, RiskCategory]] = [
    (80, RiskCategory.critical),
    (60, RiskCategory.high),
    (40, RiskCategory.medium),
    (20, RiskCategory.low),
]

# Travel risk weights. Infrastructure counts inverted: poor infra = more risk.
TRAVEL_WEIGHTS = {
    "security": 0.35,
    "health": 0.25,
    "political": 0.25,
    "infrastructure": 0.15,
}

RECOMMENDATIONS: dict[RiskCategory, list[str]] = {
    RiskCategory.critical: [
        "URGENT: Immediate action required to mitigate critical risks",
        "Escalate to executive leadership and risk committee",
        "Develop detailed remediation plan with immediate milestones",
        "Consider temporary controls or process changes to reduce exposure",
        "Establish daily monitoring and reporting",
    ],
    RiskCategory.high: [
        "High risk: Develop comprehensive mitigation strategy",
        "Assign dedicated resources to address top risk drivers",
        "Increase control effectiveness and testing frequency",
        "Escalate to management for resource allocation",
        "Schedule monthly risk reviews",
    ],
    RiskCategory.medium: [
        "Medium risk: Develop action plan to reduce exposure",
        "Enhance existing controls or add new compensating controls",
        "Review and strengthen third-party oversight",
        "Conduct quarterly risk assessments",
    ],
    RiskCategory.low: [
        "Low risk: Maintain current controls and monitoring",
        "Document control design and effectiveness",
        "Schedule semi-annual reviews",
    ],
    RiskCategory.minimal: [
        "Minimal risk: Maintain current control environment",
        "Continue routine monitoring and annual assessments",
    ],
}

TOP_RISKS_LIMIT = 5


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 away from zero for positive values (Python's round() is banker's rounding)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def categorize_risk(score: float) -> RiskCategory:
    for threshold, category in CATEGORY_THRESHOLDS:
        if score >= threshold:
            return category
    return RiskCategory.minimal


def residual_risk(inherent_risk: float, control_effectiveness: float) -> float:
    mitigation = clamp(control_effectiveness) / 100
    return round_half_up(clamp(inherent_risk) * (1 - mitigation), 2)


class RiskScoringEngine:
    """Stateless scorer. One shared instance lives in grc_api.store."""

    def get_recommendations(self, score: float) -> list[str]:
        # Copy so callers can prepend portfolio-specific lines
        return list(RECOMMENDATIONS[categorize_risk(score)])

    def calculate_entity_risk(self, entity: RiskEntity) -> RiskScore:
        residual = residual_risk(entity.inherent_risk, entity.control_effectiveness)
        score = int(round_half_up(residual))

        return RiskScore(
            entity_id=entity.id,
            entity_name=entity.name,
            inherent_risk=entity.inherent_risk,
            control_effectiveness=entity.control_effectiveness,
            residual_risk=residual,
            risk_score=score,
            category=categorize_risk(score),
            recommendations=self.get_recommendations(score),
        )

    def calculate_travel_risk(
        self,
        destination: str,
        security_rating: float = 50,
        health_risk: float = 50,
        political_instability: float = 50,
        infrastructure_quality: float = 50,
    ) -> TravelRiskScore:
        """Weighted travel risk for a destination. All four inputs clamp to 0-100."""
        security = clamp(security_rating)
        health = clamp(health_risk)
        political = clamp(political_instability)
        infra = clamp(infrastructure_quality)

        raw = (
            security * TRAVEL_WEIGHTS["security"]
            + health * TRAVEL_WEIGHTS["health"]
            + political * TRAVEL_WEIGHTS["political"]
            + (100 - infra) * TRAVEL_WEIGHTS["infrastructure"]
        )
        score = int(round_half_up(raw))

        return TravelRiskScore(
            destination=destination,
            risk_score=score,
            category=categorize_risk(score),
            factors=TravelRiskFactors(
                security_rating=security,
                health_risk=health,
                political_instability=political,
                infrastructure_quality=infra,
            ),
            recommendations=self.get_recommendations(score),
        )

    def calculate_portfolio_risk(self, entities: list[RiskEntity]) -> PortfolioRiskSummary:
        if not entities:
            return PortfolioRiskSummary(
                portfolio_risk_score=0,
                entities_count=0,
                critical_count=0,
                high_count=0,
                medium_count=0,
                low_count=0,
                minimal_count=0,
                avg_inherent_risk=0,
                avg_control_effectiveness=0,
                avg_residual_risk=0,
                top_risks=[],
                recommendations=["No entities to assess"],
            )

        scores = [self.calculate_entity_risk(e) for e in entities]
        scores.sort(key=lambda s: s.risk_score, reverse=True)

        counts = {category: 0 for category in RiskCategory}
        for score in scores:
            counts[score.category] += 1

        n = len(scores)
        avg_inherent = round_half_up(sum(s.inherent_risk for s in scores) / n, 2)
        avg_effectiveness = round_half_up(sum(s.control_effectiveness for s in scores) / n, 2)
        avg_residual = round_half_up(sum(s.residual_risk for s in scores) / n, 2)

        # Portfolio risk is the average residual risk
        portfolio_score = int(round_half_up(avg_residual))

        recommendations = self.get_recommendations(portfolio_score)
        if counts[RiskCategory.critical]:
            recommendations.insert(
                0,
                f"{counts[RiskCategory.critical]} critical risk(s) identified - "
                "immediate executive attention required",
            )
        if counts[RiskCategory.high]:
            recommendations.insert(
                0,
                f"{counts[RiskCategory.high]} high risk(s) identified - prioritize mitigation efforts",
            )

        return PortfolioRiskSummary(
            portfolio_risk_score=portfolio_score,
            entities_count=n,
            critical_count=counts[RiskCategory.critical],
            high_count=counts[RiskCategory.high],
            medium_count=counts[RiskCategory.medium],
            low_count=counts[RiskCategory.low],
            minimal_count=counts[RiskCategory.minimal],
            avg_inherent_risk=avg_inherent,
            avg_control_effectiveness=avg_effectiveness,
            avg_residual_risk=avg_residual,
            top_risks=scores[:TOP_RISKS_LIMIT],
            recommendations=recommendations,
        )


# ---------------------------------------------------------------------------
# Sample portfolio served by GET /api/risk-scoring
# ---------------------------------------------------------------------------

SAMPLE_PORTFOLIO: list[RiskEntity] = [
    RiskEntity(id="sys-001", name="Customer Data Platform", type="system",
               inherent_risk=95, control_effectiveness=85,
               description="Central repository for customer PII and behavioral data"),
    RiskEntity(id="ven-001", name="Third-Party Payment Processor", type="vendor",
               inherent_risk=88, control_effectiveness=92,
               description="External vendor processing credit card transactions"),
    RiskEntity(id="dept-001", name="Finance Department", type="department",
               inherent_risk=72, control_effectiveness=88,
               description="Handles financial transactions and reporting"),
    RiskEntity(id="sys-002", name="Email System", type="system",
               inherent_risk=65, control_effectiveness=78,
               description="Corporate email and collaboration platform"),
    RiskEntity(id="ven-002", name="Cloud Infrastructure Provider", type="vendor",
               inherent_risk=78, control_effectiveness=82,
               description="Hosts critical applications and data"),
    RiskEntity(id="dept-002", name="HR Department", type="department",
               inherent_risk=60, control_effectiveness=75,
               description="Manages employee records and benefits"),
    RiskEntity(id="proc-001", name="Access Control Process", type="process",
               inherent_risk=55, control_effectiveness=80,
               description="User provisioning and deprovisioning procedures"),
    RiskEntity(id="data-001", name="Data Backup and Recovery", type="data",
               inherent_risk=48, control_effectiveness=86,
               description="Disaster recovery and business continuity system"),
]
