"""Stream platform packages into the temporary directory."""

from __future__ import annotations

import logging
import posixpath
import threading
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlparse

from self_updater.constants import DOWNLOAD_CHUNK_SIZE, SUCCESS_STATUS_RANGE
from self_updater.models import (
    ConfigurationError,
    DownloadAbortedError,
    FilesystemError,
    HttpStatusError,
    Manifest,
    UpdateError,
)
from self_updater.platforms import PlatformKey
from self_updater.transport import HttpResponse, Transport, UrlLibTransport

_LOGGER = logging.getLogger(__name__)

_UNSAFE_FILENAMES = frozenset({"", ".", ".."})

Dispatcher = Callable[[Callable[[], None]], None]
CompleteCallback = Callable[[Path], None]
ErrorCallback = Callable[[UpdateError], None]
ProgressCallback = Callable[[int, "int | None"], None]


def _call_now(callback: Callable[[], None]) -> None:
    callback()


def download_filename(url: str) -> str:
    """Return the basename of the path component of ``url``."""

    path = unquote(urlparse(url).path)
    return posixpath.basename(path.rstrip("/"))


class DownloadHandle:
    """Track one package download running on a background thread.

    ``on_complete`` fires exactly once, only after the response and the
    destination file are closed and the status was a success.  ``abort``
    suppresses every later notification.
    """

    def __init__(
        self,
        url: str,
        destination: Path,
        manifest: Manifest,
        *,
        on_complete: CompleteCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_progress: ProgressCallback | None = None,
        dispatch: Dispatcher = _call_now,
    ) -> None:
        self.url = url
        self.destination = destination
        self.manifest = manifest
        self.content_length: int | None = None
        self.received_bytes = 0
        self._on_complete = on_complete
        self._on_error = on_error
        self._on_progress = on_progress
        self._dispatch = dispatch
        self._aborted = threading.Event()
        self._finished = threading.Event()
        self._notify_lock = threading.Lock()
        self._notified = False
        self._error: UpdateError | None = None
        self._response: HttpResponse | None = None
        self._thread: threading.Thread | None = None

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    def abort(self) -> None:
        """Stop the transfer and suppress the completion callback.

        The open response is closed so a worker blocked on a stalled read is
        released.
        """

        if not self._aborted.is_set():
            _LOGGER.info("Aborting download of %s", self.url)
        self._aborted.set()
        response = self._response
        if response is not None:
            try:
                response.close()
            except OSError:
                _LOGGER.debug("Closing response of %s failed", self.url, exc_info=True)

    def wait(self, timeout: float | None = None) -> Path:
        """Block until the transfer ends and return the downloaded file."""

        if not self._finished.wait(timeout):
            raise TimeoutError(f"Download of {self.url} is still running")
        if self._aborted.is_set():
            raise DownloadAbortedError(f"Download of {self.url} was aborted")
        if self._error is not None:
            raise self._error
        return self.destination

    def start(self, transport: Transport, chunk_size: int) -> None:
        self._thread = threading.Thread(
            target=self._run,
            args=(transport, chunk_size),
            name="self-updater-download",
            daemon=True,
        )
        self._thread.start()

    def _run(self, transport: Transport, chunk_size: int) -> None:
        try:
            self._transfer(transport, chunk_size)
        except UpdateError as exc:
            self._fail(exc)
            return
        except Exception as exc:  # pragma: no cover - defensive guard
            if not self._aborted.is_set():
                _LOGGER.exception("Unexpected error while downloading %s", self.url)
            self._fail(UpdateError(f"Download of {self.url} failed: {exc}"))
            return

        if self._aborted.is_set():
            self._discard_partial_file()
            self._finished.set()
            return

        _LOGGER.info(
            "Downloaded %s bytes from %s to %s", self.received_bytes, self.url, self.destination
        )
        self._finished.set()
        self._notify(self._on_complete, self.destination)

    def _fail(self, error: UpdateError) -> None:
        self._discard_partial_file()
        self._error = error
        self._finished.set()
        if not self._aborted.is_set():
            _LOGGER.warning("Download of %s failed: %s", self.url, error)
            self._notify(self._on_error, error)

    def _transfer(self, transport: Transport, chunk_size: int) -> None:
        response = transport.open(self.url)
        self._response = response
        try:
            self._capture_content_length(response)
            if response.status not in SUCCESS_STATUS_RANGE:
                raise HttpStatusError(response.status, self.url)
            if self._aborted.is_set():
                return
            self._stream_body(response, chunk_size)
        finally:
            self._response = None
            response.close()

    def _capture_content_length(self, response: HttpResponse) -> None:
        raw_length = response.headers.get("content-length")
        if raw_length is None:
            return
        try:
            self.content_length = int(raw_length)
        except ValueError:
            _LOGGER.debug("Ignoring malformed content-length %r", raw_length)

    def _stream_body(self, response: HttpResponse, chunk_size: int) -> None:
        try:
            with self.destination.open("wb") as target:
                while not self._aborted.is_set():
                    chunk = response.read(chunk_size)
                    if not chunk:
                        break
                    target.write(chunk)
                    self.received_bytes += len(chunk)
                    if self._on_progress is not None and not self._aborted.is_set():
                        self._on_progress(self.received_bytes, self.content_length)
        except OSError as exc:
            raise FilesystemError(
                f"Failed to write package to {self.destination}: {exc}"
            ) from exc

    def _notify(self, callback, argument) -> None:
        if callback is None:
            return

        def deliver() -> None:
            with self._notify_lock:
                if self._notified or self._aborted.is_set():
                    return
                self._notified = True
            callback(argument)

        self._dispatch(deliver)

    def _discard_partial_file(self) -> None:
        try:
            self.destination.unlink(missing_ok=True)
        except OSError:
            _LOGGER.debug("Unable to remove partial download %s", self.destination, exc_info=True)


class PackageDownloader:
    """Download the package the manifest publishes for the active platform."""

    def __init__(
        self,
        platform: PlatformKey,
        temporary_directory: Path,
        *,
        transport: Transport | None = None,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
        dispatch: Dispatcher = _call_now,
    ) -> None:
        self._platform = platform
        self._temporary_directory = Path(temporary_directory)
        self._transport = transport or UrlLibTransport()
        self._chunk_size = chunk_size
        self._dispatch = dispatch

    def destination_for(self, url: str) -> Path:
        filename = download_filename(url)
        if filename in _UNSAFE_FILENAMES or "\\" in filename:
            raise ConfigurationError(f"Package URL {url} does not name a file")
        return self._temporary_directory / filename

    def download(
        self,
        manifest: Manifest,
        *,
        on_complete: CompleteCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> DownloadHandle:
        """Start downloading ``manifest``'s package and return its handle."""

        package = manifest.package_for(self._platform)
        destination = self.destination_for(package.url)
        self._remove_stale_download(destination)

        _LOGGER.info(
            "Downloading %s %s for %s from %s",
            manifest.name,
            manifest.version,
            self._platform.value,
            package.url,
        )
        handle = DownloadHandle(
            package.url,
            destination,
            manifest,
            on_complete=on_complete,
            on_error=on_error,
            on_progress=on_progress,
            dispatch=self._dispatch,
        )
        handle.start(self._transport, self._chunk_size)
        return handle

    def _remove_stale_download(self, destination: Path) -> None:
        try:
            self._temporary_directory.mkdir(parents=True, exist_ok=True)
            destination.unlink(missing_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Failed to clear previous download at {destination}: {exc}"
            ) from exc


__all__ = ["DownloadHandle", "PackageDownloader", "download_filename"]
