"""
Tests for the Microsoft Graph client.
"""

import httpx
import pytest

from azure_token_validator import GraphAPIError, GraphClient


def graph_client(handler) -> GraphClient:
    return GraphClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestGraphClient:

    def test_resolve_url(self):
        graph = GraphClient()
        assert graph.resolve_url("me") == "https://graph.microsoft.com/v1.0/me"
        assert graph.resolve_url("//me/messages") == "https://graph.microsoft.com/v1.0/me/messages"
        assert graph.resolve_url("https://graph.microsoft.com/beta/me") == "https://graph.microsoft.com/beta/me"

    @pytest.mark.asyncio
    async def test_get_me_sends_bearer_token(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"displayName": "Ada"})

        result = await graph_client(handler).get_me("tok")

        assert result == {"displayName": "Ada"}
        assert str(seen[0].url) == "https://graph.microsoft.com/v1.0/me"
        assert seen[0].headers["Authorization"] == "Bearer tok"
        assert seen[0].headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status(self):
        graph = graph_client(lambda request: httpx.Response(401, json={"error": "InvalidAuthenticationToken"}))

        with pytest.raises(GraphAPIError) as exc_info:
            await graph.call_endpoint("tok", "/users")

        assert exc_info.value.status_code == 401
        assert exc_info.value.url == "https://graph.microsoft.com/v1.0/users"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out")

        with pytest.raises(GraphAPIError) as exc_info:
            await graph_client(handler).get_me("tok")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)
