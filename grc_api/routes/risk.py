"""
/api/risk-scoring -- Residual risk scoring.

Scores entities (systems, vendors, departments, processes, data sets)
as inherent risk reduced by control effectiveness, rolls them up into a
portfolio view, and scores travel destinations from four weighted factors.
"""

from fastapi import APIRouter

from grc_api import store
from grc_api.core.risk_scoring import SAMPLE_PORTFOLIO
from grc_api.models.schemas import (
    ApiResponse,
    PortfolioRequest,
    RiskEntity,
    TravelRiskRequest,
    ok,
)

router = APIRouter()

CATEGORY_RANGES = {
    "Critical": "80-100",
    "High": "60-79",
    "Medium": "40-59",
    "Low": "20-39",
    "Minimal": "0-19",
}


@router.get(
    "/api/risk-scoring",
    response_model=ApiResponse,
    summary="Sample portfolio overview",
    description="Portfolio summary and per-entity scores for a built-in portfolio of 8 entities.",
    tags=["Risk"],
)
async def portfolio_overview() -> ApiResponse:
    engine = store.risk_engine
    return ok({
        "portfolio": engine.calculate_portfolio_risk(SAMPLE_PORTFOLIO),
        "entities": [engine.calculate_entity_risk(e) for e in SAMPLE_PORTFOLIO],
        "metadata": {
            "entities_count": len(SAMPLE_PORTFOLIO),
            "risk_categories": CATEGORY_RANGES,
        },
    })


@router.post(
    "/api/risk-scoring",
    response_model=ApiResponse,
    summary="Score one entity",
    description=(
        "Residual risk = inherent x (1 - control effectiveness / 100). "
        "Both inputs must be within 0-100."
    ),
    tags=["Risk"],
)
async def score_entity(entity: RiskEntity) -> ApiResponse:
    return ok(store.risk_engine.calculate_entity_risk(entity))


@router.post(
    "/api/risk-scoring/portfolio",
    response_model=ApiResponse,
    summary="Score a portfolio",
    description="Aggregate risk for the posted entities, with the top 5 risks and counts per category.",
    tags=["Risk"],
)
async def score_portfolio(request: PortfolioRequest) -> ApiResponse:
    return ok(store.risk_engine.calculate_portfolio_risk(request.entities))


@router.post(
    "/api/risk-scoring/travel",
    response_model=ApiResponse,
    summary="Score a travel destination",
    description=(
        "Weighted sum: security 35%, health 25%, political instability 25%, "
        "inverted infrastructure quality 15%. Inputs are clamped to 0-100."
    ),
    tags=["Risk"],
)
async def score_travel(request: TravelRiskRequest) -> ApiResponse:
    return ok(store.risk_engine.calculate_travel_risk(
        request.destination,
        security_rating=request.security_rating,
        health_risk=request.health_risk,
        political_instability=request.political_instability,
        infrastructure_quality=request.infrastructure_quality,
    ))
