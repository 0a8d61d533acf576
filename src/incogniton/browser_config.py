"""
BrowserConfig
=============
Configuration dataclass for ``IncognitonBrowser``.

Launch fields:     ``profile_id``, ``headless``, ``custom_args``, ``launch_timeout``
Readiness fields:  ``ready_timeout``, ``poll_interval``, ``max_poll_interval``
Service fields:    ``port`` (the local Incogniton app), ``stop_profile_on_close``
"""

from dataclasses import dataclass

from .cdp_poller import DEFAULT_MAX_INTERVAL


@dataclass
class BrowserConfig:
    profile_id: str | None = None
    headless: bool = False
    custom_args: str = ""
    port: int = 35000
    launch_timeout: float = 35.0
    ready_timeout: float = 30.0
    poll_interval: float = 0.5
    max_poll_interval: float = DEFAULT_MAX_INTERVAL
    stealth: bool = False
    stop_profile_on_close: bool = True

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def launch_args(self) -> str:
        """Command-line arguments sent with the launch request. Headless wins over ``custom_args``."""
        return "--headless=new" if self.headless else self.custom_args
