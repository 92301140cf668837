"""Best-effort page title lookup for tabs that arrive without one."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Protocol
from urllib.parse import urlsplit

import aiohttp

from tabsync._constants import TITLE_FETCH_TIMEOUT_S, USER_AGENT

_logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title>(.*?)</title>", re.IGNORECASE | re.DOTALL)


class TitleLookup(Protocol):
    """Structural interface used by ingestion.

    Keeping this a protocol lets tests pass a fake without any HTTP.
    """

    async def resolve(self, url: str) -> str:
        ...


def extract_title(html: str) -> str | None:
    """Return the stripped text of the first ``<title>`` element, if any."""
    match = _TITLE_RE.search(html)
    if match is None:
        return None
    title = match.group(1).strip()
    return title or None


def fallback_title(url: str) -> str:
    """Host name of *url*, or *url* itself when it has no parseable host."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return url
    return hostname or url


class TitleResolver:
    """Fetch a page and pull its ``<title>``, falling back to the host name.

    :meth:`resolve` never raises: timeouts, network errors, non-2xx
    responses and undecodable bodies all end in :func:`fallback_title`.
    """

    def __init__(
        self,
        *,
        timeout: float = TITLE_FETCH_TIMEOUT_S,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._external_session = session is not None
        self._http_session = session

    async def __aenter__(self) -> TitleResolver:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def _http(self) -> aiohttp.ClientSession:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession(headers={"user-agent": USER_AGENT})
            self._external_session = False
        return self._http_session

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None

    async def _fetch_title(self, url: str) -> str | None:
        async with self._http().get(url, timeout=self._timeout, allow_redirects=True) as resp:
            if not 200 <= resp.status < 300:
                _logger.debug("Title fetch for %s returned HTTP %s", url, resp.status)
                return None
            text = await resp.text(errors="replace")
        return extract_title(text)

    async def resolve(self, url: str) -> str:
        """Return a human-readable title for *url*."""
        try:
            title = await self._fetch_title(url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            _logger.debug("Title fetch for %s failed: %s", url, exc)
            title = None
        except Exception:
            _logger.debug("Title fetch for %s failed unexpectedly", url, exc_info=True)
            title = None
        if title:
            return title
        return fallback_title(url)
