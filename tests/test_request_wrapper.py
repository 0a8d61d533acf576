"""Tests for RequestWrapper: deferred actions, encodings, and error translation."""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from pytest_httpx import HTTPXMock

from incogniton import (
    APIError,
    AuthorizationError,
    BodyEncoding,
    HttpAgent,
    RequestTimeoutError,
    TransportError,
)

pytestmark = pytest.mark.asyncio

URL = "http://incogniton.test/profile/add"


@pytest_asyncio.fixture
async def agent():
    a = HttpAgent("test-service")
    yield a
    await a.aclose()


# ── Configuration ────────────────────────────────────────────────────────────


class TestConfiguration:
    """Tests for chained header/body configuration."""

    async def test_headers_merge_last_write_wins(self, agent, httpx_mock: HTTPXMock):
        """Later header writes overwrite earlier ones key by key."""
        httpx_mock.add_response(method="GET", url=URL, json={})
        await (
            agent.get(URL)
            .set_header("X-Request-ID", "first")
            .set_headers({"X-Request-ID": "second", "Accept-Language": "en"})
            .execute()
        )
        sent = httpx_mock.get_request()
        assert sent.headers["X-Request-ID"] == "second"
        assert sent.headers["Accept-Language"] == "en"

    async def test_last_set_body_wins(self, agent, httpx_mock: HTTPXMock):
        """Only the most recent payload is sent."""
        httpx_mock.add_response(method="POST", url=URL, json={})
        await agent.post(URL).set_body({"a": 1}).set_body({"b": 2}).execute()
        assert json.loads(httpx_mock.get_request().content) == {"b": 2}

    async def test_track_sets_origin_service(self, agent, httpx_mock: HTTPXMock):
        """track() tags the request with the agent's service name."""
        httpx_mock.add_response(method="GET", url=URL, json={})
        await agent.get(URL).track().execute()
        assert httpx_mock.get_request().headers["X-Origin-Service"] == "test-service"

    async def test_get_data_becomes_query_string(self, agent, httpx_mock: HTTPXMock):
        """GET payloads are sent as query parameters, not a body."""
        httpx_mock.add_response(method="GET", url=f"{URL}?page=2", json={})
        await agent.get(URL, {"page": 2}).execute()
        assert httpx_mock.get_request().content == b""

    async def test_plugin_can_mutate_and_defer(self, agent, httpx_mock: HTTPXMock):
        """A plugin edits the request synchronously and queues async work through defer."""
        httpx_mock.add_response(method="GET", url=URL, json={})

        def plugin(request, defer):
            request.headers["X-Sync"] = "yes"

            async def later(req):
                req.headers["X-Deferred"] = "yes"

            defer(later)

        await agent.get(URL).use(plugin).execute()
        sent = httpx_mock.get_request()
        assert sent.headers["X-Sync"] == "yes"
        assert sent.headers["X-Deferred"] == "yes"

    async def test_form_urlencoding_rejects_json(self, agent):
        """use_form_urlencoding() only accepts form strategies."""
        with pytest.raises(ValueError, match="form strategy"):
            agent.post(URL).use_form_urlencoding(BodyEncoding.JSON)


# ── Encoding ─────────────────────────────────────────────────────────────────


class TestEncoding:
    """Tests for the body encoding applied at execution time."""

    async def test_json_default(self, agent, httpx_mock: HTTPXMock):
        """Bodies are JSON unless a form strategy is selected."""
        httpx_mock.add_response(method="POST", url=URL, json={})
        await agent.post(URL, {"profileID": "p1", "customArgs": ""}).execute()
        sent = httpx_mock.get_request()
        assert sent.headers["Content-Type"] == "application/json"
        assert json.loads(sent.content) == {"profileID": "p1", "customArgs": ""}

    async def test_flatten_strategy(self, agent, httpx_mock: HTTPXMock):
        """Flatten encoding sends bracketed form fields."""
        httpx_mock.add_response(method="POST", url=URL, json={})
        await agent.post(URL).set_body({"Proxy": {"proxy_url": "h:1"}}).use_form_urlencoding().execute()
        sent = httpx_mock.get_request()
        assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert parse_qs(sent.content.decode()) == {"Proxy[proxy_url]": ["h:1"]}

    async def test_envelope_overrides_explicit_json_type(self, agent, httpx_mock: HTTPXMock):
        """The encoding decides Content-Type even if type() was set to JSON earlier."""
        httpx_mock.add_response(method="POST", url=URL, json={})
        payload = {"general_profile_information": {"profile_name": "P"}}
        await agent.post(URL).type().set_body(payload).use_profile_envelope().execute()
        sent = httpx_mock.get_request()
        assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"
        fields = parse_qs(sent.content.decode())
        assert list(fields) == ["profileData"]
        assert json.loads(fields["profileData"][0]) == payload

    async def test_deferred_body_change_is_encoded(self, agent, httpx_mock: HTTPXMock):
        """Encoding happens after deferred actions, so their body edits are sent."""
        httpx_mock.add_response(method="POST", url=URL, json={})

        async def stamp(request):
            request.body = {**request.body, "stamped": True}

        await agent.post(URL, {"a": 1}).use_deferred(stamp).use_form_urlencoding().execute()
        assert parse_qs(httpx_mock.get_request().content.decode()) == {"a": ["1"], "stamped": ["true"]}


# ── Deferred actions ─────────────────────────────────────────────────────────


class TestDeferredActions:
    """Tests for the ordering guarantees around deferred actions."""

    @pytest.mark.parametrize("count", [0, 1, 5])
    async def test_all_actions_finish_before_dispatch(self, agent, httpx_mock: HTTPXMock, count):
        """Every deferred action completes before the transport call starts."""
        events: list[str] = []

        def transport(request: httpx.Request) -> httpx.Response:
            events.append("transport")
            return httpx.Response(200, json={})

        httpx_mock.add_callback(transport, method="GET", url=URL)

        def make_action(k):
            async def action(_request):
                await asyncio.sleep(0.001 * (count - k))
                events.append(f"action-{k}")

            return action

        wrapper = agent.get(URL)
        for k in range(count):
            wrapper.use_deferred(make_action(k))
        await wrapper.execute()

        assert events[-1] == "transport"
        assert sorted(events[:-1]) == sorted(f"action-{k}" for k in range(count))

    async def test_failing_action_prevents_dispatch(self, agent, httpx_mock: HTTPXMock):
        """A deferred action that raises aborts the request before any network I/O."""

        async def broken(_request):
            raise RuntimeError("vault unavailable")

        with pytest.raises(RuntimeError, match="vault unavailable"):
            await agent.get(URL).use_deferred(broken).execute()
        assert httpx_mock.get_requests() == []

    async def test_failing_action_cancels_siblings(self, agent, httpx_mock: HTTPXMock):
        """Remaining actions are cancelled, and their cleanup has run, by the time execute() raises."""
        finished: list[str] = []

        async def slow(_request):
            try:
                await asyncio.sleep(10)
                finished.append("slow")
            finally:
                await asyncio.sleep(0)
                finished.append("cleaned up")

        async def broken(_request):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await agent.get(URL).use_deferred(slow).use_deferred(broken).execute()
        assert finished == ["cleaned up"]
        assert httpx_mock.get_requests() == []

    async def test_authorize_sets_bearer_token(self, agent, httpx_mock: HTTPXMock):
        """authorize() resolves the token just before dispatch."""
        httpx_mock.add_response(method="GET", url=URL, json={})

        async def token():
            return "secret"

        await agent.get(URL).authorize(token).execute()
        assert httpx_mock.get_request().headers["Authorization"] == "Bearer secret"

    async def test_missing_token_raises_authorization_error(self, agent, httpx_mock: HTTPXMock):
        """An empty token aborts with AuthorizationError and no request is sent."""

        async def no_token():
            return None

        with pytest.raises(AuthorizationError, match="requires an authorization token"):
            await agent.get(URL).authorize(no_token).execute()
        assert httpx_mock.get_requests() == []


# ── Execution ────────────────────────────────────────────────────────────────


class TestExecution:
    """Tests for response decoding and typed failure mapping."""

    async def test_returns_decoded_json(self, agent, httpx_mock: HTTPXMock):
        """A 2xx JSON body is returned decoded."""
        httpx_mock.add_response(method="GET", url=URL, json={"status": "ok", "profileData": []})
        assert await agent.get(URL).execute() == {"status": "ok", "profileData": []}

    async def test_empty_body_decodes_to_empty_dict(self, agent, httpx_mock: HTTPXMock):
        """An empty 200 body is treated as {} rather than a parse failure."""
        httpx_mock.add_response(method="GET", url=URL, text="")
        assert await agent.get(URL).execute() == {}

    async def test_api_error_uses_body_message(self, agent, httpx_mock: HTTPXMock):
        """A 500 with a message field surfaces that message and the status."""
        httpx_mock.add_response(method="POST", url=URL, status_code=500, json={"message": "bad profile"})
        with pytest.raises(APIError) as exc_info:
            await agent.post(URL, {"a": 1}).execute()
        assert exc_info.value.message == "bad profile"
        assert str(exc_info.value) == "bad profile"
        assert exc_info.value.status == 500
        assert exc_info.value.data == {"message": "bad profile"}
        assert exc_info.value.url == URL

    async def test_api_error_generic_message(self, agent, httpx_mock: HTTPXMock):
        """Without a message field the error names the URL and status; raw text is kept."""
        httpx_mock.add_response(method="GET", url=URL, status_code=404, text="not here")
        with pytest.raises(APIError, match=f"Request to {URL} failed with status 404") as exc_info:
            await agent.get(URL).execute()
        assert exc_info.value.data == "not here"

    async def test_timeout_maps_to_request_timeout_error(self, agent, httpx_mock: HTTPXMock):
        """Transport timeouts surface as RequestTimeoutError carrying the budget."""
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"), method="GET", url=URL)
        with pytest.raises(RequestTimeoutError) as exc_info:
            await agent.get(URL).execute(timeout=2.5)
        assert exc_info.value.timeout == 2.5
        assert exc_info.value.url == URL
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
        assert not isinstance(exc_info.value, TransportError)

    async def test_connect_error_maps_to_transport_error(self, agent, httpx_mock: HTTPXMock):
        """Connection failures surface as TransportError with the httpx error name as code."""
        httpx_mock.add_exception(httpx.ConnectError("connection refused"), method="GET", url=URL)
        with pytest.raises(TransportError) as exc_info:
            await agent.get(URL).execute()
        assert not isinstance(exc_info.value, RequestTimeoutError)
        assert exc_info.value.code == "ConnectError"
        assert "connection refused" in str(exc_info.value)

    async def test_invalid_json_is_transport_error(self, agent, httpx_mock: HTTPXMock):
        """A 2xx body that is not JSON is reported as a decoding failure."""
        httpx_mock.add_response(method="GET", url=URL, text="<html>")
        with pytest.raises(TransportError) as exc_info:
            await agent.get(URL).execute()
        assert exc_info.value.code == "DecodingError"

    async def test_execute_only_once(self, agent, httpx_mock: HTTPXMock):
        """A wrapper is consumed by its first execute()."""
        httpx_mock.add_response(method="GET", url=URL, json={})
        wrapper = agent.get(URL)
        await wrapper.execute()
        with pytest.raises(RuntimeError, match="already executed"):
            await wrapper.execute()
        assert len(httpx_mock.get_requests()) == 1

    async def test_timeout_not_caught_as_transport_error(self, agent, httpx_mock: HTTPXMock):
        """Handlers for unreachable services do not swallow timeouts."""
        httpx_mock.add_exception(httpx.ConnectTimeout("timed out"), method="GET", url=URL)
        with pytest.raises(RequestTimeoutError):
            try:
                await agent.get(URL).execute(timeout=1.0)
            except TransportError:
                pytest.fail("timeout was handled as a transport failure")


# ── Whole-call timeout ───────────────────────────────────────────────────────


async def trickle_body():
    """A response body that never finishes, one byte at a time."""
    yield b"{"
    while True:
        await asyncio.sleep(0.05)
        yield b" "


class TestWholeCallTimeout:
    """Tests that ``timeout`` bounds the entire call, not each read."""

    async def test_trickling_response_times_out(self):
        """Bytes arriving faster than the read timeout still cannot outlast the budget."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=trickle_body()))
        async with httpx.AsyncClient(transport=transport) as http:
            agent = HttpAgent("test-service", http)
            loop = asyncio.get_running_loop()
            started = loop.time()
            with pytest.raises(RequestTimeoutError) as exc_info:
                await asyncio.wait_for(agent.get(URL).execute(timeout=0.3), 5)
        assert exc_info.value.timeout == 0.3
        assert loop.time() - started < 2.0
