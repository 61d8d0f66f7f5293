"""Tests for the routing API client and fuzzy trip resolvers."""

from __future__ import annotations

import json

import httpx
import pytest

from congestion_recorder.exceptions import (
    ParseError,
    RemoteServiceUnavailableError,
    RoutePatternIdNotFoundError,
    TripIdNotFoundError,
)
from congestion_recorder.services.routing.client import (
    SUBSCRIPTION_KEY_HEADER,
    RoutingApiClient,
    RoutingApiError,
)
from congestion_recorder.services.routing.resolvers import (
    RoutePatternIdResolver,
    TripIdResolver,
    _FuzzyTripResolver,
)

from .fixtures.fake_store import FakeRoutingApi

URL = "https://routing.test/graphql"


def _client_returning(response: httpx.Response, seen: list[httpx.Request] | None = None) -> RoutingApiClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return response

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RoutingApiClient(http_client, URL, subscription_key="secret")


class TestRoutingApiClient:
    """Unit tests for RoutingApiClient."""

    @pytest.mark.asyncio
    async def test_query_posts_variables_and_key(self) -> None:
        seen: list[httpx.Request] = []
        client = _client_returning(
            httpx.Response(200, json={"data": {"fuzzyTrip": None}}), seen
        )

        data = await client.query("{ fuzzyTrip }", {"route": "HSL:1007"})

        assert data == {"fuzzyTrip": None}
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == URL
        assert request.headers[SUBSCRIPTION_KEY_HEADER] == "secret"
        assert json.loads(request.content) == {
            "query": "{ fuzzyTrip }",
            "variables": {"route": "HSL:1007"},
        }

    @pytest.mark.asyncio
    async def test_no_key_header_without_subscription_key(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {}})

        client = RoutingApiClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)), URL)
        await client.query("{ x }")

        assert SUBSCRIPTION_KEY_HEADER not in seen[0].headers

    @pytest.mark.asyncio
    async def test_graphql_errors_raise(self) -> None:
        client = _client_returning(
            httpx.Response(200, json={"data": None, "errors": [{"message": "Invalid route"}]})
        )

        with pytest.raises(RoutingApiError, match="Invalid route"):
            await client.query("{ x }")

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self) -> None:
        client = _client_returning(httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(RoutingApiError, match="non-JSON"):
            await client.query("{ x }")

    @pytest.mark.asyncio
    async def test_http_status_error_propagates(self) -> None:
        client = _client_returning(httpx.Response(502, text="bad gateway"))

        with pytest.raises(httpx.HTTPStatusError):
            await client.query("{ x }")


class TestFuzzyTripResolvers:
    """Unit tests for RoutePatternIdResolver and TripIdResolver."""

    def test_base_resolver_requires_id_extractor(self) -> None:
        with pytest.raises(TypeError):
            _FuzzyTripResolver(FakeRoutingApi().client())  # type: ignore[abstract]

    @pytest.mark.asyncio
    async def test_route_pattern_id_resolved(self) -> None:
        api = FakeRoutingApi(route_pattern_code="HSL:1007:1:02")
        resolver = RoutePatternIdResolver(api.client())

        route_pattern_id = await resolver.find_id_by_departure("1007", 1, "2019-05-30", 29700)

        assert route_pattern_id == "HSL:1007:1:02"
        assert api.requests[0]["variables"] == {
            "route": "HSL:1007",
            "direction": 1,
            "date": "2019-05-30",
            "time": 29700,
        }
        assert "pattern" in api.requests[0]["query"]

    @pytest.mark.asyncio
    async def test_trip_id_resolved(self) -> None:
        api = FakeRoutingApi(trip_gtfs_id="HSL:1007_20190530_Ke_2_0815")
        resolver = TripIdResolver(api.client())

        trip_id = await resolver.find_id_by_departure("1007", 1, "2019-05-30", 29700)

        assert trip_id == "HSL:1007_20190530_Ke_2_0815"
        assert "gtfsId" in api.requests[0]["query"]

    @pytest.mark.asyncio
    async def test_route_pattern_not_found(self) -> None:
        resolver = RoutePatternIdResolver(FakeRoutingApi(route_pattern_code=None).client())

        with pytest.raises(RoutePatternIdNotFoundError, match="route ID HSL:1007"):
            await resolver.find_id_by_departure("1007", 0, "2019-05-30", 29700)

    @pytest.mark.asyncio
    async def test_trip_not_found(self) -> None:
        resolver = TripIdResolver(FakeRoutingApi(trip_gtfs_id=None).client())

        with pytest.raises(TripIdNotFoundError):
            await resolver.find_id_by_departure("1007", 0, "2019-05-30", 29700)

    @pytest.mark.asyncio
    async def test_service_error_wrapped_as_unavailable(self) -> None:
        resolver = TripIdResolver(FakeRoutingApi(status_code=500).client())

        with pytest.raises(RemoteServiceUnavailableError, match="trip ID") as exc_info:
            await resolver.find_id_by_departure("1007", 0, "2019-05-30", 29700)

        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_malformed_response_wrapped_as_unavailable(self) -> None:
        client = _client_returning(httpx.Response(200, json={"data": {"fuzzyTrip": {"pattern": None}}}))
        resolver = RoutePatternIdResolver(client)

        with pytest.raises(RemoteServiceUnavailableError, match="route pattern ID"):
            await resolver.find_id_by_departure("1007", 0, "2019-05-30", 29700)

    @pytest.mark.asyncio
    async def test_network_error_wrapped_as_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = RoutingApiClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)), URL)
        resolver = RoutePatternIdResolver(client)

        with pytest.raises(RemoteServiceUnavailableError, match="connection refused"):
            await resolver.find_id_by_departure("1007", 0, "2019-05-30", 29700)

    @pytest.mark.asyncio
    async def test_missing_route_id_is_a_parse_error(self) -> None:
        api = FakeRoutingApi()
        resolver = RoutePatternIdResolver(api.client())

        with pytest.raises(ParseError):
            await resolver.find_id_by_departure(None, 0, "2019-05-30", 29700)
        assert api.requests == []
