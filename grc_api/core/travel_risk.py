"""
Travel Risk

Two pieces:
  1. A scorer that turns a government travel advisory (level 1-4 plus
     optional health and security sub-levels) into a 0-100 risk score.
  2. An advisory client that asks an external advisory service when one
     is configured (ADVISORY_SERVICE_URL) and falls back to a small
     built-in advisory table if the service is unset or unreachable.
"""

import logging
import os
from datetime import datetime, timezone

import httpx

from grc_api.core.risk_scoring import round_half_up
from grc_api.models.schemas import Advisory, AdvisoryRiskFactors, AdvisoryRiskOutput

logger = logging.getLogger(__name__)

ADVISORY_SERVICE_URL = os.getenv("ADVISORY_SERVICE_URL", "")
ADVISORY_TIMEOUT = float(os.getenv("ADVISORY_TIMEOUT", "10"))

# ── Scoring tables ─────────────────────────────────────────────────

LEVEL_BASE_SCORES = {1: 10, 2: 40, 3: 70, 4: 95}

LEVEL_NAMES = {
    1: "Exercise Normal Precautions",
    2: "Exercise Increased Caution",
    3: "Reconsider Travel",
    4: "Do Not Travel",
}

LEVEL_RECOMMENDATIONS = {
    1: "Safe to travel. Follow normal precautions as you would in your home country.",
    2: "Travel is possible but exercise increased caution. Be aware of your surroundings.",
    3: "Consider postponing travel unless absolutely necessary. Reconsider any non-essential travel.",
    4: "Do not travel to this destination. The U.S. State Department advises against travel.",
}

GENERAL_PRECAUTIONS = [
    "Check with local authorities",
    "Register travel itinerary",
    "Purchase travel insurance",
]

# Trip risk blends the organisation's GRC posture with the destination risk
GRC_WEIGHT = 0.4
TRAVEL_WEIGHT = 0.6


def _risk_level(score: float) -> str:
    if score <= 25:
        return "low"
    if score <= 50:
        return "medium"
    if score <= 75:
        return "high"
    return "critical"


def calculate_travel_risk_score(destination: str, advisory: Advisory) -> AdvisoryRiskOutput:
    base = LEVEL_BASE_SCORES.get(advisory.advisory_level, 50)
    health_impact = (advisory.health_risk_level or 0) * 10
    security_impact = (advisory.security_risk_level or 0) * 10
    score = min(100, base + health_impact + security_impact)

    factors = AdvisoryRiskFactors(
        advisory_level=LEVEL_NAMES[advisory.advisory_level],
        health_factors=(
            [f"Health risk level: {advisory.health_risk_level}/5"]
            if advisory.health_risk_level else []
        ),
        security_factors=(
            [f"Security risk level: {advisory.security_risk_level}/5"]
            if advisory.security_risk_level else []
        ),
        other_factors=list(GENERAL_PRECAUTIONS),
    )

    return AdvisoryRiskOutput(
        destination=destination,
        score=int(round_half_up(score)),
        risk_level=_risk_level(score),
        factors=factors,
        travel_recommendation=LEVEL_RECOMMENDATIONS.get(
            advisory.advisory_level,
            "Check current travel advisories before planning your trip.",
        ),
        last_updated=advisory.last_updated,
    )


def combined_risk_score(grc_score: float, travel_score: float) -> int:
    return int(round_half_up(grc_score * GRC_WEIGHT + travel_score * TRAVEL_WEIGHT))


# ── Advisory lookup ────────────────────────────────────────────────

BUILTIN_ADVISORIES: dict[str, dict] = {
    "US": {"country_name": "United States", "advisory_level": 1,
           "health_risk_level": 1, "security_risk_level": 1},
    "GB": {"country_name": "United Kingdom", "advisory_level": 1,
           "health_risk_level": 1, "security_risk_level": 1},
    "JP": {"country_name": "Japan", "advisory_level": 1,
           "health_risk_level": 2, "security_risk_level": 1},
}

# Unknown destinations get a cautious default
UNKNOWN_ADVISORY = {"advisory_level": 2, "health_risk_level": 3, "security_risk_level": 2}


def builtin_advisory(country_code: str) -> Advisory:
    code = country_code.upper()
    known = BUILTIN_ADVISORIES.get(code)
    if known:
        return Advisory(country_code=code, **known)
    return Advisory(country_code=code, country_name=code, **UNKNOWN_ADVISORY)


class AdvisoryClient:
    """Fetches advisories from the advisory service, or the built-in table."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (ADVISORY_SERVICE_URL if base_url is None else base_url).rstrip("/")
        self.timeout = ADVISORY_TIMEOUT if timeout is None else timeout
        self._transport = transport

    async def get_advisory(self, country_code: str) -> Advisory:
        code = country_code.upper()
        if not self.base_url:
            return builtin_advisory(code)

        url = f"{self.base_url}/advisories/{code}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()

            return _map_service_response(code, resp.json())

        except Exception as e:
            logger.warning(
                "Advisory service unavailable for %s (%s), falling back to built-in table",
                code,
                e,
            )
            return builtin_advisory(code)

    async def get_advisories(self, country_codes: list[str]) -> list[Advisory]:
        return [await self.get_advisory(code) for code in country_codes]


def _map_service_response(code: str, data: dict) -> Advisory:
    """Map the advisory service JSON to an Advisory."""
    updated = data.get("last_updated") or data.get("date")
    return Advisory(
        country_code=data.get("country_code", code),
        country_name=data.get("country_name", code),
        advisory_level=int(data["advisory_level"]),
        health_risk_level=data.get("health_risk_level"),
        security_risk_level=data.get("security_risk_level"),
        last_updated=updated or datetime.now(timezone.utc),
    )
