"""OneMapClient: async access to the OneMap elastic search endpoint.

Usage::

    from neighbourly.config import get_settings
    from neighbourly.onemap.client import OneMapClient

    async with OneMapClient(get_settings()) as client:
        response = await client.search("560123")

Failure policy
--------------
Every call is a single attempt.  Network errors, timeouts, non-2xx
responses and bodies that do not match the schema all raise
OneMapUnavailableError; no request is ever retried.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from neighbourly.config import Settings
from neighbourly.onemap.models import OneMapSearchResponse

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/common/elastic/search"


class OneMapUnavailableError(Exception):
    """Raised when OneMap cannot be reached or does not answer with a 2xx."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class OneMapClient:
    """Async HTTP client for the OneMap search API.

    Intended to be used as an async context manager so that the underlying
    httpx.AsyncClient is always properly closed::

        async with OneMapClient(settings) as client:
            response = await client.search("Lorong 30 Geylang")
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {}
        if settings.onemap_api_token:
            headers["Authorization"] = f"Bearer {settings.onemap_api_token}"
        self._client = httpx.AsyncClient(
            base_url=settings.onemap_base_url,
            headers=headers,
            timeout=httpx.Timeout(settings.onemap_timeout_seconds, connect=5.0),
            transport=transport,
        )

    async def __aenter__(self) -> "OneMapClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search(self, search_val: str, page: int = 1) -> OneMapSearchResponse:
        """Run one search and return the parsed first page.

        Args:
            search_val: Postal code, address or free text.
            page: Result page number (1-based).

        Returns:
            OneMapSearchResponse with ``found`` and ranked ``results``.

        Raises:
            OneMapUnavailableError: Transport failure, non-2xx status or a
                malformed body.
        """
        params = {
            "searchVal": search_val,
            "returnGeom": "Y",
            "getAddrDetails": "Y",
            "pageNum": str(page),
        }
        try:
            response = await self._client.get(SEARCH_PATH, params=params)
        except httpx.HTTPError as exc:
            logger.warning("OneMap request failed for %r: %s", search_val, exc)
            raise OneMapUnavailableError(f"OneMap unreachable: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "OneMap returned %d for %r", response.status_code, search_val
            )
            raise OneMapUnavailableError(
                f"OneMap returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return OneMapSearchResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("OneMap returned a malformed body for %r: %s", search_val, exc)
            raise OneMapUnavailableError(
                f"OneMap returned a malformed body: {exc}",
                status_code=response.status_code,
            ) from exc
