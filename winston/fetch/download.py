"""Direct file downloads for URL inputs."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import unquote, urlparse
from urllib.request import Request, urlopen

from ..errors import FetchError
from ..logging import get_logger

DEFAULT_FILENAME = "downloadedContract.sol"
DOWNLOADS_DIRNAME = "downloads"


class Downloader:
    """Downloads a single file into ``<workdir>/downloads``."""

    def __init__(
        self,
        workdir: Path | str = "temp_repos",
        *,
        timeout: Optional[float] = None,
        opener: Callable[..., object] | None = None,
    ) -> None:
        self.downloads_dir = Path(workdir) / DOWNLOADS_DIRNAME
        self.timeout = timeout
        self._opener = opener
        self.logger = get_logger("fetch.download")

    def download(self, url: str) -> Path:
        """Write the response body for ``url`` verbatim and return the local path."""
        self.logger.info("Downloading %s", url)
        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        target = (self.downloads_dir / filename_from_url(url)).resolve()

        request = Request(url, method="GET")
        opener = self._opener or urlopen
        try:
            if self.timeout is None:
                response = opener(request)
            else:
                response = opener(request, timeout=self.timeout)
            with response as handle:  # type: ignore[attr-defined]
                status = getattr(handle, "status", 200)
                if status is not None and not 200 <= int(status) < 300:
                    raise FetchError(url, f"Download of {url} failed with status {status}")
                body = handle.read()
        except HTTPError as exc:
            raise FetchError(url, f"Download of {url} failed with status {exc.code}: {exc.reason}") from exc
        except URLError as exc:
            raise FetchError(url, f"Download of {url} failed: {exc.reason}") from exc
        except OSError as exc:
            raise FetchError(url, f"Download of {url} failed: {exc}") from exc

        try:
            target.write_bytes(body)
        except OSError as exc:
            raise FetchError(url, f"Unable to save download of {url} to {target}: {exc}") from exc
        self.logger.info("Downloaded %s to %s", url, target)
        return target


def filename_from_url(url: str) -> str:
    """Return the last path segment of ``url`` with any query string dropped."""
    path = urlparse(url).path
    name = PurePosixPath(unquote(path)).name if path else ""
    if name in ("", ".", "..") or any(char in name for char in ("/", "\\", "\x00")):
        return DEFAULT_FILENAME
    return name


__all__ = ["DEFAULT_FILENAME", "Downloader", "filename_from_url"]
