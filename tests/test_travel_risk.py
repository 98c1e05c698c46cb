"""Tests for advisory-based travel risk and the advisory client fallback."""

import asyncio

import httpx
import pytest

from grc_api.core.travel_risk import (
    AdvisoryClient,
    builtin_advisory,
    calculate_travel_risk_score,
    combined_risk_score,
)
from grc_api.models.schemas import Advisory


def advisory(level, health=None, security=None):
    return Advisory(country_code="XX", country_name="Testland", advisory_level=level,
                    health_risk_level=health, security_risk_level=security)


class TestAdvisoryScore:

    def test_level_one_with_sub_levels(self):
        result = calculate_travel_risk_score("Testland", advisory(1, 1, 1))
        assert result.score == 30
        assert result.risk_level == "medium"
        assert result.factors.advisory_level == "Exercise Normal Precautions"
        assert result.factors.health_factors == ["Health risk level: 1/5"]

    def test_level_three_without_sub_levels(self):
        result = calculate_travel_risk_score("Testland", advisory(3))
        assert result.score == 70
        assert result.risk_level == "high"
        assert result.factors.health_factors == []
        assert result.factors.security_factors == []
        assert result.travel_recommendation.startswith("Consider postponing")

    def test_score_capped_at_100(self):
        result = calculate_travel_risk_score("Testland", advisory(4, 5, 5))
        assert result.score == 100
        assert result.risk_level == "critical"

    def test_general_precautions_always_listed(self):
        result = calculate_travel_risk_score("Testland", advisory(1))
        assert "Purchase travel insurance" in result.factors.other_factors

    def test_combined_score(self):
        assert combined_risk_score(50, 100) == 80
        assert combined_risk_score(0, 0) == 0


class TestBuiltinAdvisories:

    def test_known_country(self):
        jp = builtin_advisory("jp")
        assert jp.country_code == "JP"
        assert jp.country_name == "Japan"
        assert calculate_travel_risk_score(jp.country_name, jp).score == 40

    def test_unknown_country_gets_cautious_default(self):
        zz = builtin_advisory("zz")
        assert zz.country_code == "ZZ"
        assert zz.advisory_level == 2
        assert zz.health_risk_level == 3


class TestAdvisoryClient:

    def test_no_service_uses_builtin_table(self):
        client = AdvisoryClient(base_url="")
        result = asyncio.run(client.get_advisory("gb"))
        assert result.country_name == "United Kingdom"

    def test_service_response_is_mapped(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={
                "country_name": "France",
                "advisory_level": 2,
                "health_risk_level": 1,
                "security_risk_level": 2,
            })

        client = AdvisoryClient(base_url="http://advisory.test/", transport=httpx.MockTransport(handler))
        result = asyncio.run(client.get_advisory("fr"))

        assert seen == ["/advisories/FR"]
        assert result.country_code == "FR"
        assert result.country_name == "France"
        assert result.advisory_level == 2
        assert result.security_risk_level == 2

    def test_server_error_falls_back(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        client = AdvisoryClient(base_url="http://advisory.test", transport=transport)
        result = asyncio.run(client.get_advisory("JP"))
        assert result.country_name == "Japan"

    def test_connection_error_falls_back(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = AdvisoryClient(base_url="http://advisory.test", transport=httpx.MockTransport(handler))
        result = asyncio.run(client.get_advisory("US"))
        assert result.country_name == "United States"

    def test_bad_payload_falls_back(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"unexpected": True}))
        client = AdvisoryClient(base_url="http://advisory.test", transport=transport)
        result = asyncio.run(client.get_advisory("US"))
        assert result.advisory_level == 1

    def test_many(self):
        client = AdvisoryClient(base_url="")
        results = asyncio.run(client.get_advisories(["US", "JP"]))
        assert [a.country_code for a in results] == ["US", "JP"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
