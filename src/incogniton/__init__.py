"""incogniton: async client for the Incogniton profile service."""

from .body_encoding import BodyEncoding
from .browser import IncognitonBrowser
from .browser_config import BrowserConfig
from .cdp_poller import CDPPoller, PollState, PollStatus, wait_for_cdp_ready
from .client import IncognitonClient
from .config import ClientConfig
from .cookie_session import to_session
from .errors import (
    APIError,
    AuthorizationError,
    IncognitonError,
    LaunchError,
    MissingDependencyError,
    PollTimeoutError,
    RequestTimeoutError,
    TransportError,
)
from .http_agent import HttpAgent, HttpAgentBuilder, HttpMethod, init_http_agent
from .launch_mode import LaunchMode
from .request_wrapper import PendingRequest, RequestWrapper

__all__ = [
    "APIError",
    "AuthorizationError",
    "BodyEncoding",
    "BrowserConfig",
    "CDPPoller",
    "ClientConfig",
    "HttpAgent",
    "HttpAgentBuilder",
    "HttpMethod",
    "IncognitonBrowser",
    "IncognitonClient",
    "IncognitonError",
    "LaunchError",
    "LaunchMode",
    "MissingDependencyError",
    "PendingRequest",
    "PollState",
    "PollStatus",
    "PollTimeoutError",
    "RequestTimeoutError",
    "RequestWrapper",
    "TransportError",
    "init_http_agent",
    "to_session",
    "wait_for_cdp_ready",
]
