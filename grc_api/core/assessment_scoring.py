"""
Assessment Scoring

Scores a framework assessment from per-control implementation responses.
Scale is 0-100 where 0 means every control is implemented and 100 means
none are. Controls are grouped by category, each category is the mean of
its response scores, and the overall score is the weighted mean of the
categories.
"""

from collections import defaultdict

from grc_api.core.risk_scoring import round_half_up
from grc_api.models.schemas import (
    AssessmentMetrics,
    CategoryScore,
    ControlScore,
    ScoringInput,
    ScoringOutput,
)

CATEGORY_WEIGHTS: dict[str, float] = {
    "Access Control": 0.15,
    "Asset Management": 0.10,
    "Cryptography": 0.12,
    "Physical Security": 0.08,
    "Incident Management": 0.15,
    "Business Continuity": 0.12,
    "Risk Assessment": 0.10,
    "Compliance": 0.10,
    "Operations": 0.08,
}
DEFAULT_CATEGORY_WEIGHT = 0.10

RESPONSE_SCORES = {
    "implemented": 0.0,
    "partially-implemented": 0.5,
    "not-implemented": 1.0,
}

UNCATEGORIZED = "Uncategorized"


def get_category_weight(category: str) -> float:
    return CATEGORY_WEIGHTS.get(category, DEFAULT_CATEGORY_WEIGHT)


def get_response_score(response: str) -> float:
    # Anything we don't recognise is treated as not implemented
    return RESPONSE_SCORES.get(response, 1.0)


def determine_risk_level(score: float) -> str:
    """0-25 low, 26-50 medium, 51-75 high, 76-100 critical."""
    if score <= 25:
        return "low"
    if score <= 50:
        return "medium"
    if score <= 75:
        return "high"
    return "critical"


def _group_by_category(controls: list[ControlScore]) -> dict[str, list[ControlScore]]:
    grouped: dict[str, list[ControlScore]] = defaultdict(list)
    for control in controls:
        grouped[control.category or UNCATEGORIZED].append(control)
    return grouped


def _category_scores(grouped: dict[str, list[ControlScore]]) -> list[CategoryScore]:
    scores = []
    for category, controls in grouped.items():
        mean = sum(get_response_score(c.response) for c in controls) / len(controls)
        scores.append(
            CategoryScore(
                category=category,
                score=int(round_half_up(mean * 100)),
                weight=get_category_weight(category),
                control_count=len(controls),
                implemented_count=sum(1 for c in controls if c.response == "implemented"),
            )
        )
    return sorted(scores, key=lambda c: c.category)


def _overall_score(category_scores: list[CategoryScore]) -> int:
    total_weight = 0.0
    weighted_sum = 0.0
    for category in category_scores:
        weight = category.weight or DEFAULT_CATEGORY_WEIGHT
        weighted_sum += category.score * weight
        total_weight += weight

    if total_weight <= 0:
        return 0
    return int(round_half_up(weighted_sum / total_weight))


def calculate_assessment_score(scoring_input: ScoringInput) -> ScoringOutput:
    if not scoring_input.controls:
        return ScoringOutput(
            assessment_id=scoring_input.assessment_id,
            overall_score=0,
            risk_level="low",
            category_scores=[],
        )

    category_scores = _category_scores(_group_by_category(scoring_input.controls))
    overall = _overall_score(category_scores)

    return ScoringOutput(
        assessment_id=scoring_input.assessment_id,
        overall_score=overall,
        risk_level=determine_risk_level(overall),
        category_scores=category_scores,
    )


def assessment_metrics(category_scores: list[CategoryScore]) -> AssessmentMetrics:
    total = sum(c.control_count for c in category_scores)
    implemented = sum(c.implemented_count for c in category_scores)
    compliance = implemented / total * 100 if total else 0

    return AssessmentMetrics(
        total_controls=total,
        implemented_controls=implemented,
        compliance_percentage=int(round_half_up(compliance)),
    )
