"""
Body encoding
=============
On-wire representations for request payloads. The encoding is chosen
explicitly by the caller, never inferred from the payload's shape:

    JSON           payload serialized as-is.
    FORM_FLATTEN   nested mappings expanded into ``parent[child]=value`` pairs.
    FORM_ENVELOPE  whole payload serialized to JSON under one ``profileData`` field.

Usage::

    encode_body({"Proxy": {"proxy_url": "1.2.3.4:8080"}}, BodyEncoding.FORM_FLATTEN)
    # 'Proxy%5Bproxy_url%5D=1.2.3.4%3A8080'
"""

import json
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any
from urllib.parse import quote, urlencode

PROFILE_ENVELOPE_KEY = "profileData"

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class BodyEncoding(str, Enum):
    """How ``RequestWrapper.execute`` serializes the body."""

    JSON = "json"
    FORM_FLATTEN = "form-flatten"  # Generic nested form fields
    FORM_ENVELOPE = "form-envelope"  # Required by profile create/update

    @property
    def content_type(self) -> str:
        return JSON_CONTENT_TYPE if self is BodyEncoding.JSON else FORM_CONTENT_TYPE


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), default=_json_default)


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def flatten_form_fields(payload: Mapping[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    """
    Walk ``payload`` and return one ``(key_path, value)`` pair per leaf.

    Nested mappings become ``parent[child]``, sequences become ``parent[0]``.
    ``None`` leaves are skipped.
    """
    fields: list[tuple[str, str]] = []
    for key, value in payload.items():
        path = f"{prefix}[{key}]" if prefix else str(key)
        fields.extend(_flatten_value(path, value))
    return fields


def _flatten_value(path: str, value: Any) -> list[tuple[str, str]]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return flatten_form_fields(value, path)
    if isinstance(value, (list, tuple)):
        fields: list[tuple[str, str]] = []
        for index, item in enumerate(value):
            fields.extend(_flatten_value(f"{path}[{index}]", item))
        return fields
    return [(path, _form_value(value))]


def encode_flatten(payload: Mapping[str, Any]) -> str:
    if not isinstance(payload, Mapping):
        raise TypeError(f"Form encoding needs a mapping payload, got {type(payload).__name__}")
    return urlencode(flatten_form_fields(payload), quote_via=quote)


def encode_envelope(payload: Any) -> str:
    return urlencode({PROFILE_ENVELOPE_KEY: to_json(payload)}, quote_via=quote)


def encode_body(payload: Any, encoding: BodyEncoding) -> str | None:
    """Serialize ``payload`` for the wire. ``None`` means no body at all."""
    if payload is None:
        return None
    match encoding:
        case BodyEncoding.JSON:
            return to_json(payload)
        case BodyEncoding.FORM_FLATTEN:
            return encode_flatten(payload)
        case BodyEncoding.FORM_ENVELOPE:
            return encode_envelope(payload)
        case _:
            raise ValueError(f"Unsupported BodyEncoding: {encoding}")
