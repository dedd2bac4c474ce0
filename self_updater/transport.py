"""HTTP transport seam used by the manifest client and the downloader."""

from __future__ import annotations

import logging
from typing import Mapping, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from self_updater.models import NetworkError

_LOGGER = logging.getLogger(__name__)


class HttpResponse(Protocol):
    """Minimal view of an HTTP response: status, headers and a byte stream."""

    status: int
    headers: Mapping[str, str]

    def read(self, size: int = -1) -> bytes:
        """Return up to ``size`` bytes of the body, ``b""`` once exhausted."""

    def close(self) -> None:
        """Release the underlying connection."""


class Transport(Protocol):
    """Protocol describing how a URL is fetched."""

    def open(self, url: str) -> HttpResponse:
        """Start a GET request and return once the response headers arrived.

        Implementations raise :class:`NetworkError` when no response can be
        obtained.  Non-success statuses are returned, not raised.
        """


class _UrlLibResponse:
    def __init__(self, raw) -> None:
        self._raw = raw
        status = getattr(raw, "status", None)
        if status is None:
            status = raw.getcode()
        self.status = int(status)
        self.headers = _lowercase_headers(raw.headers)

    def read(self, size: int = -1) -> bytes:
        try:
            return self._raw.read(size)
        except OSError as exc:
            raise NetworkError(f"Connection failed while reading response: {exc}") from exc

    def close(self) -> None:
        self._raw.close()


class UrlLibTransport:
    """Fetch URLs with :func:`urllib.request.urlopen`."""

    def __init__(self, *, user_agent: str = "self-updater") -> None:
        self._user_agent = user_agent

    def open(self, url: str) -> HttpResponse:
        _LOGGER.debug("Requesting %s", url)
        request = Request(url, headers={"User-Agent": self._user_agent})
        try:
            raw = urlopen(request)  # nosec - URL comes from the application manifest
        except HTTPError as exc:
            # HTTPError doubles as the response object for non-2xx statuses.
            _LOGGER.debug("Request to %s returned status %s", url, exc.code)
            return _UrlLibResponse(exc)
        except (URLError, OSError, ValueError) as exc:
            raise NetworkError(f"Failed to reach {url}: {exc}") from exc
        return _UrlLibResponse(raw)


def _lowercase_headers(headers) -> dict[str, str]:
    if headers is None:
        return {}
    return {str(key).lower(): str(value) for key, value in headers.items()}


__all__ = ["HttpResponse", "Transport", "UrlLibTransport"]
