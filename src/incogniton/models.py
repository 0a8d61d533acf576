"""
Models
======
Shapes of the JSON the profile service accepts and returns. These are
``TypedDict`` contracts only; nothing validates them at runtime.
"""

from typing import Literal, NotRequired, TypedDict

ProfileId = str
Status = Literal["ok", "error"]
ProfileStatus = Literal["ready", "launching", "launched", "syncing", "synced"]
WebRTCBehavior = Literal["Altered", "Masked", "Real"]


class GeneralProfileInformation(TypedDict, total=False):
    profile_name: str
    profile_notes: str
    profile_group: str
    profile_last_edited: str
    simulated_operating_system: str
    profile_browser_version: str
    browser_id: str


class Proxy(TypedDict):
    connection_type: str
    proxy_url: str
    proxy_username: NotRequired[str]
    proxy_password: NotRequired[str]
    proxy_rotating: NotRequired[int]
    proxy_provider: NotRequired[str]


class Timezone(TypedDict):
    fill_timezone_based_on_ip: bool
    timezone_offset: NotRequired[str]
    timezone_name: NotRequired[str]


class WebRTC(TypedDict):
    behavior: WebRTCBehavior
    set_external_ip: bool
    local_ip: NotRequired[str]
    public_ip: NotRequired[str]


class Navigator(TypedDict, total=False):
    user_agent: str
    screen_resolution: str
    navigator_useragent_match_chrome_core: bool
    languages: str
    navigator_languageIPToggle: int
    platform: str
    do_not_track: bool
    hardware_concurrency: int
    navigator_useragent_always_latest: bool


class OtherSettings(TypedDict, total=False):
    browser_allowRealMediaDevices: bool
    active_session_lock: bool
    other_ShowProfileName: bool
    custom_browser_args_enabled: bool
    browser_language_lock: bool
    custom_browser_language: str
    custom_browser_args_string: str


# Section keys are the service's own capitalized names.
BrowserProfile = TypedDict(
    "BrowserProfile",
    {
        "general_profile_information": GeneralProfileInformation,
        "Proxy": Proxy,
        "Timezone": Timezone,
        "WebRTC": WebRTC,
        "Navigator": Navigator,
        "Other": OtherSettings,
    },
    total=False,
)


class ProfileCookie(TypedDict, total=False):
    name: str
    value: str
    domain: str
    path: str
    secure: bool
    httpOnly: bool
    sameSite: str
    expires: float


class AddCookieRequest(TypedDict):
    name: str
    value: str
    domain: str
    path: NotRequired[str]
    secure: NotRequired[bool]
    httpOnly: NotRequired[bool]
    sameSite: NotRequired[str]
    expires: NotRequired[float]


class StatusResponse(TypedDict, total=False):
    status: Status
    message: str


class ProfileListResponse(TypedDict, total=False):
    status: Status
    profileData: list[BrowserProfile]


class ProfileResponse(TypedDict, total=False):
    status: Status
    profileData: BrowserProfile


class AddProfileResponse(TypedDict, total=False):
    status: Status
    profile_browser_id: ProfileId


class ProfileStatusResponse(TypedDict, total=False):
    status: ProfileStatus


class CookieListResponse(TypedDict, total=False):
    status: Status
    message: str
    CookieData: list[ProfileCookie]


class AddCookieResponse(TypedDict, total=False):
    profile_browser_id: ProfileId
    format: str
    cookie: str


class PuppeteerLaunchResponse(TypedDict, total=False):
    status: Status
    puppeteerUrl: str


class SeleniumLaunchResponse(TypedDict, total=False):
    status: Status
