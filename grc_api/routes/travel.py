"""
GET /api/travel-risk/{country_code} -- Travel advisory risk.

Looks up the advisory for a country (external advisory service when
configured, built-in table otherwise), scores it, and optionally blends
it with an organisation GRC score.
"""

from fastapi import APIRouter, HTTPException, Query

from grc_api import store
from grc_api.core.travel_risk import calculate_travel_risk_score, combined_risk_score
from grc_api.models.schemas import ApiResponse, ok

router = APIRouter()


@router.get(
    "/api/travel-risk/{country_code}",
    response_model=ApiResponse,
    summary="Travel risk for a country",
    description=(
        "Score = advisory level base (10/40/70/95) + 10 per health and security "
        "risk level, capped at 100. Pass `grc_score` to get the combined "
        "score (40% GRC, 60% travel)."
    ),
    tags=["Risk"],
)
async def travel_risk(
    country_code: str,
    grc_score: float | None = Query(default=None, ge=0, le=100),
) -> ApiResponse:
    if not country_code.isalpha() or len(country_code) != 2:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid country code '{country_code}'. Use an ISO 3166-1 alpha-2 code such as JP.",
        )

    advisory = await store.advisory_client.get_advisory(country_code)
    risk = calculate_travel_risk_score(advisory.country_name, advisory)

    data = {"advisory": advisory, "risk": risk}
    if grc_score is not None:
        data["combined_score"] = combined_risk_score(grc_score, risk.score)
    return ok(data)
