"""
IncognitonClient
================
Async client for the Incogniton profile service. Endpoints are grouped the
way the service groups them:

    client.profile     CRUD, launch, stop and status of browser profiles.
    client.cookie      cookies stored on a profile.
    client.automation  launch a profile for Puppeteer/CDP or Selenium.

Usage::

    async with IncognitonClient() as client:
        profiles = await client.profile.list()
        launched = await client.automation.launch_puppeteer(profile_id)
"""

import logging
from dataclasses import replace
from types import TracebackType
from typing import Any, Self
from urllib.parse import quote

import httpx
import requests

from .config import ClientConfig
from .cookie_session import to_session
from .http_agent import HttpAgentBuilder, HttpMethod, init_http_agent
from .launch_mode import LaunchMode
from .models import (
    AddCookieRequest,
    AddCookieResponse,
    AddProfileResponse,
    BrowserProfile,
    CookieListResponse,
    ProfileId,
    ProfileListResponse,
    ProfileResponse,
    ProfileStatusResponse,
    Proxy,
    PuppeteerLaunchResponse,
    SeleniumLaunchResponse,
    StatusResponse,
)
from .request_wrapper import RequestWrapper, TokenProvider


def _segment(profile_id: ProfileId) -> str:
    return quote(str(profile_id), safe="")


class IncognitonClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        token_provider: TokenProvider | None = None,
    ):
        if config is None:
            config = ClientConfig.from_env(base_url)
        elif base_url is not None:
            config = replace(config, base_url=base_url.rstrip("/"))
        self.config = config
        self.http: HttpAgentBuilder = init_http_agent(self.config.service_name, self.config.base_url, http_client)
        self._token_provider = token_provider or self._static_token_provider()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.logger.debug("Using profile service at %s", self.config.base_url)

        self.profile = ProfileAPI(self)
        self.cookie = CookieAPI(self)
        self.automation = AutomationAPI(self)

    def _static_token_provider(self) -> TokenProvider | None:
        token = self.config.api_token
        if not token:
            return None

        async def provide() -> str:
            return token

        return provide

    @property
    def base_url(self) -> str:
        return self.http.base_url

    @property
    def timeout(self) -> float:
        return self.config.timeout

    def build(self, method: HttpMethod, endpoint: str) -> RequestWrapper:
        """Start a JSON request to ``endpoint`` with tracing and, if configured, auth."""
        wrapper = self.http.request(method, endpoint).type().track()
        if self._token_provider is not None:
            wrapper.authorize(self._token_provider)
        return wrapper

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class ProfileAPI:
    def __init__(self, client: IncognitonClient):
        self._client = client

    async def list(self) -> ProfileListResponse:
        return await self._client.build(HttpMethod.GET, "/profile/all").execute(self._client.timeout)

    async def get(self, profile_id: ProfileId) -> ProfileResponse:
        return await self._client.build(HttpMethod.GET, f"/profile/get/{_segment(profile_id)}").execute(
            self._client.timeout
        )

    async def add(self, profile_data: BrowserProfile) -> AddProfileResponse:
        """Create a profile. Only ``general_profile_information`` is required by the service."""
        return await (
            self._client.build(HttpMethod.POST, "/profile/add")
            .set_body(profile_data)
            .use_profile_envelope()
            .execute(self._client.timeout)
        )

    async def update(self, profile_id: ProfileId, profile_data: BrowserProfile) -> StatusResponse:
        """Update a profile; only the sections present in ``profile_data`` change."""
        return await (
            self._client.build(HttpMethod.POST, "/profile/update")
            .set_body({**profile_data, "profile_browser_id": profile_id})
            .use_profile_envelope()
            .execute(self._client.timeout)
        )

    async def switch_proxy(self, profile_id: ProfileId, proxy: Proxy) -> StatusResponse:
        return await self.update(profile_id, {"Proxy": proxy})

    async def launch(self, profile_id: ProfileId, mode: LaunchMode | str = LaunchMode.DEFAULT) -> StatusResponse:
        mode = LaunchMode(mode)
        endpoint = f"/profile/launch/{_segment(profile_id)}{mode.path_suffix}"
        return await self._client.build(HttpMethod.GET, endpoint).execute(self._client.timeout)

    async def launch_force_local(self, profile_id: ProfileId) -> StatusResponse:
        return await self.launch(profile_id, LaunchMode.LOCAL)

    async def launch_force_cloud(self, profile_id: ProfileId) -> StatusResponse:
        return await self.launch(profile_id, LaunchMode.CLOUD)

    async def get_status(self, profile_id: ProfileId) -> ProfileStatusResponse:
        return await self._client.build(HttpMethod.GET, f"/profile/status/{_segment(profile_id)}").execute(
            self._client.timeout
        )

    async def stop(self, profile_id: ProfileId) -> StatusResponse:
        return await self._client.build(HttpMethod.GET, f"/profile/stop/{_segment(profile_id)}").execute(
            self._client.timeout
        )

    async def delete(self, profile_id: ProfileId) -> StatusResponse:
        return await self._client.build(HttpMethod.GET, f"/profile/delete/{_segment(profile_id)}").execute(
            self._client.timeout
        )


class CookieAPI:
    def __init__(self, client: IncognitonClient):
        self._client = client

    async def get(self, profile_id: ProfileId) -> CookieListResponse:
        return await self._client.build(HttpMethod.GET, f"/profile/cookie/{_segment(profile_id)}").execute(
            self._client.timeout
        )

    async def add(self, profile_id: ProfileId, cookie: AddCookieRequest) -> AddCookieResponse:
        return await (
            self._client.build(HttpMethod.POST, "/profile/addCookie")
            .set_body({**cookie, "profile_browser_id": profile_id})
            .execute(self._client.timeout)
        )

    async def delete(self, profile_id: ProfileId) -> StatusResponse:
        return await self._client.build(HttpMethod.GET, f"/profile/deleteCookie/{_segment(profile_id)}").execute(
            self._client.timeout
        )

    async def session(self, profile_id: ProfileId, headers: dict[str, str] | None = None) -> requests.Session:
        """Fetch the profile's cookies and load them into a ``requests.Session``."""
        response = await self.get(profile_id)
        return to_session(response.get("CookieData") or [], headers)


class AutomationAPI:
    def __init__(self, client: IncognitonClient):
        self._client = client

    def _timeout(self, timeout: float | None) -> float:
        return self._client.timeout if timeout is None else timeout

    async def launch_puppeteer(self, profile_id: ProfileId, *, timeout: float | None = None) -> PuppeteerLaunchResponse:
        """Launch ``profile_id`` for CDP automation. ``puppeteerUrl`` is its remote-debugging URL."""
        endpoint = f"/automation/launch/puppeteer/{_segment(profile_id)}"
        return await self._client.build(HttpMethod.GET, endpoint).execute(self._timeout(timeout))

    async def launch_puppeteer_custom(
        self, profile_id: ProfileId, custom_args: str, *, timeout: float | None = None
    ) -> PuppeteerLaunchResponse:
        body: dict[str, Any] = {"profileID": profile_id, "customArgs": custom_args}
        return await (
            self._client.build(HttpMethod.POST, "/automation/launch/puppeteer")
            .set_body(body)
            .execute(self._timeout(timeout))
        )

    async def launch_selenium(self, profile_id: ProfileId, *, timeout: float | None = None) -> SeleniumLaunchResponse:
        endpoint = f"/automation/launch/python/{_segment(profile_id)}"
        return await self._client.build(HttpMethod.GET, endpoint).execute(self._timeout(timeout))

    async def launch_selenium_custom(
        self, profile_id: ProfileId, custom_args: str, *, timeout: float | None = None
    ) -> SeleniumLaunchResponse:
        return await (
            self._client.build(HttpMethod.POST, f"/automation/launch/python/{_segment(profile_id)}/")
            .set_body({"customArgs": custom_args})
            .execute(self._timeout(timeout))
        )
