"""
ClientConfig
============
Connection settings for ``IncognitonClient``.

The base URL resolves in order: explicit argument, ``INCOGNITON_API_URL``,
then the local Incogniton app on port 35000.
"""

import os
from dataclasses import dataclass

API_URL_ENV = "INCOGNITON_API_URL"
DEFAULT_BASE_URL = "http://localhost:35000"
DEFAULT_TIMEOUT = 15.0
DEFAULT_SERVICE_NAME = "incogniton-client"


def resolve_base_url(base_url: str | None = None) -> str:
    return (base_url or os.environ.get(API_URL_ENV) or DEFAULT_BASE_URL).rstrip("/")


@dataclass
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    service_name: str = DEFAULT_SERVICE_NAME
    api_token: str | None = None

    @classmethod
    def from_env(cls, base_url: str | None = None, **kwargs) -> "ClientConfig":
        return cls(base_url=resolve_base_url(base_url), **kwargs)
