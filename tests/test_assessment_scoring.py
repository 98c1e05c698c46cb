"""Tests for framework assessment scoring."""

import pytest

from grc_api.core.assessment_scoring import (
    DEFAULT_CATEGORY_WEIGHT,
    assessment_metrics,
    calculate_assessment_score,
    determine_risk_level,
    get_category_weight,
    get_response_score,
)
from grc_api.models.schemas import ControlScore, ScoringInput


def scoring_input(*controls):
    return ScoringInput(
        assessment_id="assess-1",
        framework_id="iso-27001",
        controls=[
            ControlScore(control_id=f"C-{i}", title=f"Control {i}", response=response, category=category)
            for i, (response, category) in enumerate(controls)
        ],
    )


class TestLookups:

    def test_response_scores(self):
        assert get_response_score("implemented") == 0.0
        assert get_response_score("partially-implemented") == 0.5
        assert get_response_score("not-implemented") == 1.0

    def test_unknown_response_counts_as_not_implemented(self):
        assert get_response_score("maybe") == 1.0

    def test_category_weights(self):
        assert get_category_weight("Access Control") == 0.15
        assert get_category_weight("Something Else") == DEFAULT_CATEGORY_WEIGHT

    @pytest.mark.parametrize("score,level", [
        (0, "low"), (25, "low"), (26, "medium"), (50, "medium"),
        (51, "high"), (75, "high"), (76, "critical"), (100, "critical"),
    ])
    def test_risk_levels(self, score, level):
        assert determine_risk_level(score) == level


class TestAssessmentScore:

    def test_no_controls(self):
        result = calculate_assessment_score(scoring_input())
        assert result.overall_score == 0
        assert result.risk_level == "low"
        assert result.category_scores == []

    def test_fully_implemented(self):
        result = calculate_assessment_score(scoring_input(
            ("implemented", "Access Control"),
            ("implemented", "Cryptography"),
        ))
        assert result.overall_score == 0
        assert result.risk_level == "low"

    def test_weighted_categories(self):
        result = calculate_assessment_score(scoring_input(
            ("implemented", "Access Control"),
            ("not-implemented", "Access Control"),
            ("partially-implemented", "Cryptography"),
        ))
        by_name = {c.category: c for c in result.category_scores}
        assert by_name["Access Control"].score == 50
        assert by_name["Access Control"].control_count == 2
        assert by_name["Access Control"].implemented_count == 1
        assert by_name["Cryptography"].score == 50
        assert result.overall_score == 50
        assert result.risk_level == "medium"

    def test_categories_sorted_by_name(self):
        result = calculate_assessment_score(scoring_input(
            ("implemented", "Operations"),
            ("implemented", "Access Control"),
            ("implemented", "Cryptography"),
        ))
        assert [c.category for c in result.category_scores] == [
            "Access Control", "Cryptography", "Operations",
        ]

    def test_missing_category_is_uncategorized(self):
        result = calculate_assessment_score(scoring_input(("maybe", None)))
        assert result.category_scores[0].category == "Uncategorized"
        assert result.overall_score == 100
        assert result.risk_level == "critical"


class TestMetrics:

    def test_compliance_percentage(self):
        result = calculate_assessment_score(scoring_input(
            ("implemented", "Access Control"),
            ("partially-implemented", "Access Control"),
            ("not-implemented", "Operations"),
        ))
        metrics = assessment_metrics(result.category_scores)
        assert metrics.total_controls == 3
        assert metrics.implemented_controls == 1
        assert metrics.compliance_percentage == 33

    def test_empty(self):
        metrics = assessment_metrics([])
        assert metrics.compliance_percentage == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
