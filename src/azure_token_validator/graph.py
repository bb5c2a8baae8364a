"""
Microsoft Graph client used to try an access token against a real API
"""

import logging
from typing import Any, Optional

import httpx

from .errors import GraphAPIError

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


class GraphClient:
    """Issues authenticated GET requests to Microsoft Graph"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = GRAPH_BASE_URL,
        timeout: float = 10.0
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "GraphClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def resolve_url(self, endpoint: str) -> str:
        """Absolute https URLs pass through; anything else is relative to the base URL"""
        if endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def get_me(self, token: str) -> Any:
        """Call the /me endpoint to get user information"""
        return await self.call_endpoint(token, "me")

    async def call_endpoint(self, token: str, endpoint: str) -> Any:
        url = self.resolve_url(endpoint)
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        try:
            response = await self._client.get(url, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise GraphAPIError(f"Graph API request to '{url}' failed: {e}", url=url) from e

        if not response.is_success:
            raise GraphAPIError(
                f"Graph API error: {response.status_code} - {url}",
                url=url,
                status_code=response.status_code,
            )

        logger.debug("Graph API call to %s succeeded", url)
        try:
            return response.json()
        except ValueError as e:
            raise GraphAPIError(f"Graph API returned invalid JSON from '{url}'", url=url) from e
