"""
POST /api/scoring -- Framework assessment scoring.

0 means every control is implemented, 100 means none are.
"""

from fastapi import APIRouter

from grc_api.core.assessment_scoring import assessment_metrics, calculate_assessment_score
from grc_api.models.schemas import ApiResponse, ScoringInput, ok

router = APIRouter()


@router.post(
    "/api/scoring",
    response_model=ApiResponse,
    summary="Score an assessment",
    description=(
        "Groups control responses by category, averages each category "
        "(implemented 0, partial 50, not implemented 100) and weights the "
        "categories into an overall score with a risk level."
    ),
    tags=["Compliance"],
)
async def score_assessment(scoring_input: ScoringInput) -> ApiResponse:
    result = calculate_assessment_score(scoring_input)
    return ok({
        "score": result,
        "metrics": assessment_metrics(result.category_scores),
    })
