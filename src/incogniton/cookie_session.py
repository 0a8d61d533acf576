"""
Cookie sessions
===============
Turns the cookies stored on a profile into an authenticated
``requests.Session``, so plain HTTP scraping can reuse a profile's login
without launching the browser.

Usage::

    cookies = (await client.cookie.get(profile_id))["CookieData"]
    session = to_session(cookies, headers={"user-agent": profile_user_agent})
"""

from collections.abc import Iterable, Mapping

import requests

from .models import ProfileCookie


def to_session(cookies: Iterable[ProfileCookie], headers: Mapping[str, str] | None = None) -> requests.Session:
    """
    Build a ``requests.Session`` carrying ``cookies``.

    ``headers`` are applied as session defaults, dropping HTTP/2
    pseudo-headers prefixed with ``:``. Cookies without a name are skipped.
    """
    session = requests.Session()
    if headers:
        session.headers.update({k: v for k, v in headers.items() if not k.startswith(":")})
    for cookie in cookies:
        if not cookie.get("name"):
            continue
        session.cookies.set(
            cookie["name"],
            cookie.get("value", ""),
            domain=cookie.get("domain") or "",
            path=cookie.get("path") or "/",
            secure=cookie.get("secure", False),
        )
    return session
