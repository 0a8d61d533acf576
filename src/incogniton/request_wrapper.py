"""
RequestWrapper
==============
Fluent builder for exactly one HTTP call. Configuration is synchronous and
chainable; anything asynchronous is queued as a deferred action and awaited
by ``execute()`` right before dispatch.

Usage::

    data = await (
        agent.post("/profile/add")
        .set_body(profile)
        .use_profile_envelope()
        .execute(timeout=15)
    )

Failures surface as ``TransportError``, ``RequestTimeoutError`` or
``APIError``; the wrapper never retries.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Self

import httpx

from .body_encoding import JSON_CONTENT_TYPE, BodyEncoding, encode_body
from .config import DEFAULT_TIMEOUT
from .errors import APIError, AuthorizationError, RequestTimeoutError, TransportError


@dataclass
class PendingRequest:
    """Mutable request state, owned by a single ``RequestWrapper``."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    body: Any = None
    encoding: BodyEncoding = BodyEncoding.JSON


Action = Callable[[PendingRequest], Awaitable[None]]
Defer = Callable[[Action], None]
Plugin = Callable[[PendingRequest, Defer], None]
TokenProvider = Callable[[], Awaitable[str | None]]


class RequestWrapper:
    def __init__(self, client: httpx.AsyncClient, service: str, request: PendingRequest):
        self._client = client
        self.service = service
        self.request = request
        self._deferred: list[Action] = []
        self._executed = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ── Configuration ────────────────────────────────────────────────────────

    def use_deferred(self, action: Action) -> Self:
        """Queue ``action`` to run before dispatch. It receives the pending request."""
        self._deferred.append(action)
        return self

    def use(self, plugin: Plugin) -> Self:
        """Let ``plugin`` configure the request; it may queue async work through ``defer``."""
        plugin(self.request, self.use_deferred)
        return self

    def type(self, content_type: str = JSON_CONTENT_TYPE) -> Self:
        return self.set_header("Content-Type", content_type)

    def set_header(self, key: str, value: str) -> Self:
        self.request.headers[key] = value
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Self:
        self.request.headers.update(headers)
        return self

    def track(self) -> Self:
        """Tag the request with the calling service's name."""
        return self.set_header("X-Origin-Service", self.service)

    def authorize(self, token_provider: TokenProvider) -> Self:
        """Fetch a bearer token just before dispatch. No token aborts the request."""

        async def apply_token(request: PendingRequest) -> None:
            token = await token_provider()
            if not token:
                raise AuthorizationError(request.url)
            request.headers["Authorization"] = f"Bearer {token}"

        return self.use_deferred(apply_token)

    def set_params(self, params: Mapping[str, Any] | None) -> Self:
        self.request.params = dict(params) if params is not None else None
        return self

    def set_body(self, payload: Any) -> Self:
        self.request.body = payload
        return self

    def use_form_urlencoding(self, strategy: BodyEncoding = BodyEncoding.FORM_FLATTEN) -> Self:
        if strategy is BodyEncoding.JSON:
            raise ValueError("use_form_urlencoding() needs a form strategy, not JSON")
        self.request.encoding = strategy
        return self

    def use_profile_envelope(self) -> Self:
        """Send the whole body as a JSON string in the ``profileData`` form field."""
        return self.use_form_urlencoding(BodyEncoding.FORM_ENVELOPE)

    # ── Execution ────────────────────────────────────────────────────────────

    async def _run_deferred(self) -> None:
        tasks = [asyncio.ensure_future(action(self.request)) for action in self._deferred]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def execute(self, timeout: float = DEFAULT_TIMEOUT) -> Any:
        """
        Run deferred actions, encode the body and send the request.

        ``timeout`` is in seconds and bounds this single call. Returns the
        decoded JSON body; an empty 2xx body decodes to ``{}``.
        """
        if self._executed:
            raise RuntimeError("Request already executed. Build a new request instead.")
        self._executed = True

        await self._run_deferred()

        request = self.request
        content = encode_body(request.body, request.encoding)
        headers = dict(request.headers)
        if content is not None:
            headers["Content-Type"] = request.encoding.content_type

        self.logger.debug("%s %s (%s, timeout=%ss)", request.method, request.url, request.encoding.value, timeout)
        try:
            # httpx timeouts are per phase; the outer deadline bounds the whole call.
            async with asyncio.timeout(timeout):
                response = await self._client.request(
                    request.method,
                    request.url,
                    params=request.params,
                    headers=headers,
                    content=content,
                    timeout=timeout,
                )
        except (httpx.TimeoutException, TimeoutError) as exc:
            raise RequestTimeoutError(request.url, timeout) from exc
        except httpx.RequestError as exc:
            raise TransportError(request.url, type(exc).__name__, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise APIError(request.url, response.status_code, _decode_error_body(response))
        return _decode_body(request.url, response)


def _decode_body(url: str, response: httpx.Response) -> Any:
    if not response.content.strip():
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(url, "DecodingError", f"invalid JSON in response: {exc}") from exc


def _decode_error_body(response: httpx.Response) -> Any:
    if not response.content.strip():
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text
