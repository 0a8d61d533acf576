"""
HttpAgent
=========
Factory for ``RequestWrapper`` instances. ``HttpAgent`` works with absolute
URLs; ``HttpAgentBuilder`` prefixes a base URL so callers only pass paths.

Usage::

    agent = init_http_agent("incogniton-client")
    profiles = await agent.get("/profile/all").execute()
    await agent.aclose()
"""

from enum import Enum
from typing import Any

import httpx

from .config import resolve_base_url
from .request_wrapper import PendingRequest, RequestWrapper


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class HttpAgent:
    def __init__(self, service: str, client: httpx.AsyncClient | None = None):
        self.service = service
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers={"Accept": "application/json"})

    def make_request(self, method: HttpMethod, url: str, data: Any = None) -> RequestWrapper:
        """Wrap a request. For GET and DELETE, ``data`` becomes the query string."""
        request = PendingRequest(method=method.value, url=url)
        match method:
            case HttpMethod.GET | HttpMethod.DELETE:
                request.params = data
            case _:
                request.body = data
        return RequestWrapper(self._client, self.service, request)

    def get(self, url: str, params: Any = None) -> RequestWrapper:
        return self.make_request(HttpMethod.GET, url, params)

    def post(self, url: str, body: Any = None) -> RequestWrapper:
        return self.make_request(HttpMethod.POST, url, body)

    def put(self, url: str, body: Any = None) -> RequestWrapper:
        return self.make_request(HttpMethod.PUT, url, body)

    def patch(self, url: str, body: Any = None) -> RequestWrapper:
        return self.make_request(HttpMethod.PATCH, url, body)

    def delete(self, url: str, params: Any = None) -> RequestWrapper:
        return self.make_request(HttpMethod.DELETE, url, params)

    async def aclose(self) -> None:
        """Close the pooled HTTP client, unless it was supplied by the caller."""
        if self._owns_client:
            await self._client.aclose()


class HttpAgentBuilder:
    def __init__(self, base_url: str, service_name: str = "http-client", client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.agent = HttpAgent(service_name, client)

    def request(self, method: HttpMethod, endpoint: str) -> RequestWrapper:
        return self.agent.make_request(method, f"{self.base_url}{endpoint}")

    def get(self, endpoint: str) -> RequestWrapper:
        return self.request(HttpMethod.GET, endpoint)

    def post(self, endpoint: str) -> RequestWrapper:
        return self.request(HttpMethod.POST, endpoint)

    def put(self, endpoint: str) -> RequestWrapper:
        return self.request(HttpMethod.PUT, endpoint)

    def patch(self, endpoint: str) -> RequestWrapper:
        return self.request(HttpMethod.PATCH, endpoint)

    def delete(self, endpoint: str) -> RequestWrapper:
        return self.request(HttpMethod.DELETE, endpoint)

    async def aclose(self) -> None:
        await self.agent.aclose()


def init_http_agent(
    service_name: str,
    base_url: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> HttpAgentBuilder:
    return HttpAgentBuilder(resolve_base_url(base_url), service_name, client)
