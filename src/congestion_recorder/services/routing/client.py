"""GraphQL client for the Digitransit routing API."""

from __future__ import annotations

from typing import Any

import httpx

from congestion_recorder.logging import get_logger

logger = get_logger(__name__)

SUBSCRIPTION_KEY_HEADER = "digitransit-subscription-key"


class RoutingApiError(Exception):
    """Raised when the routing API answers with GraphQL errors or an unusable body."""


class RoutingApiClient:
    """Posts GraphQL queries to the routing API over a shared HTTP client.

    The ``httpx.AsyncClient`` is owned by the caller so that every concurrent
    pipeline reuses one connection pool.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        subscription_key: str = "",
    ) -> None:
        self._http = http_client
        self.url = url
        self._headers = {"Content-Type": "application/json"}
        if subscription_key:
            self._headers[SUBSCRIPTION_KEY_HEADER] = subscription_key

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a query and return its ``data`` object.

        Raises:
            httpx.HTTPError: Transport failure or non-2xx status.
            RoutingApiError: GraphQL errors, invalid JSON or a missing ``data`` object.
        """
        response = await self._http.post(
            self.url,
            json={"query": query, "variables": variables or {}},
            headers=self._headers,
        )
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as exc:
            msg = "Routing API returned a non-JSON body"
            raise RoutingApiError(msg) from exc

        if not isinstance(body, dict):
            msg = "Routing API returned an unexpected body"
            raise RoutingApiError(msg)

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            logger.warning("Routing API query returned errors", errors=messages)
            msg = f"Routing API query failed: {messages}"
            raise RoutingApiError(msg)

        data = body.get("data")
        if not isinstance(data, dict):
            msg = "Routing API response has no data object"
            raise RoutingApiError(msg)
        return data
