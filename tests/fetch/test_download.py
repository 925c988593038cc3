"""Tests for direct file downloads."""

from __future__ import annotations

from pathlib import Path
from urllib.error import HTTPError, URLError

import pytest

from winston.errors import FetchError
from winston.fetch import download as download_module
from winston.fetch.download import DEFAULT_FILENAME, Downloader, filename_from_url


class FakeResponse:
    def __init__(self, body: bytes, status: int = 200) -> None:
        self._body = body
        self.status = status

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_filename_from_url_strips_query_string() -> None:
    assert filename_from_url("https://host/path/File.sol?x=1") == "File.sol"
    assert filename_from_url("https://host/path/lib.rs#L10") == "lib.rs"


def test_filename_from_url_defaults_without_path() -> None:
    assert filename_from_url("https://host") == DEFAULT_FILENAME
    assert filename_from_url("https://host/") == DEFAULT_FILENAME


def test_download_writes_body_verbatim(tmp_path: Path, monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["method"] = request.get_method()
        return FakeResponse(b"pragma solidity ^0.8.0;\r\n")

    monkeypatch.setattr(download_module, "urlopen", fake_urlopen)

    target = Downloader(tmp_path).download("https://host/path/File.sol?x=1")

    assert target == (tmp_path / "downloads" / "File.sol").resolve()
    assert target.read_bytes() == b"pragma solidity ^0.8.0;\r\n"
    assert captured == {"url": "https://host/path/File.sol?x=1", "method": "GET"}


def test_download_non_success_status_raises(tmp_path: Path) -> None:
    downloader = Downloader(tmp_path, opener=lambda request: FakeResponse(b"", status=304))

    with pytest.raises(FetchError, match="304"):
        downloader.download("https://host/File.sol")

    assert not (tmp_path / "downloads" / "File.sol").exists()


def test_download_http_error_raises(tmp_path: Path, monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise HTTPError(request.full_url, 404, "Not Found", hdrs=None, fp=None)

    monkeypatch.setattr(download_module, "urlopen", fake_urlopen)

    with pytest.raises(FetchError) as excinfo:
        Downloader(tmp_path).download("https://host/missing.sol")

    assert excinfo.value.url == "https://host/missing.sol"
    assert "404" in str(excinfo.value)


def test_download_network_error_raises(tmp_path: Path, monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr(download_module, "urlopen", fake_urlopen)

    with pytest.raises(FetchError, match="connection refused"):
        Downloader(tmp_path).download("https://host/File.sol")


def test_download_passes_timeout_when_configured(tmp_path: Path) -> None:
    seen = {}

    def opener(request, timeout=None):
        seen["timeout"] = timeout
        return FakeResponse(b"x")

    Downloader(tmp_path, timeout=5.0, opener=opener).download("https://host/a.rs")

    assert seen["timeout"] == 5.0


@pytest.mark.parametrize(
    "url",
    ["https://host/%2E%2E", "https://host/dir/%2E", "https://host/..%5C..%5Cevil.sol"],
)
def test_filename_from_url_rejects_dot_and_separator_names(url: str) -> None:
    assert filename_from_url(url) == DEFAULT_FILENAME


def test_download_with_dot_dot_name_stays_in_downloads(tmp_path: Path) -> None:
    downloader = Downloader(tmp_path, opener=lambda request: FakeResponse(b"contract A {}"))

    target = downloader.download("https://host/%2E%2E")

    assert target == (tmp_path / "downloads" / DEFAULT_FILENAME).resolve()
    assert target.read_bytes() == b"contract A {}"


def test_download_write_failure_raises_fetch_error(tmp_path: Path) -> None:
    (tmp_path / "downloads" / "File.sol").mkdir(parents=True)
    downloader = Downloader(tmp_path, opener=lambda request: FakeResponse(b"contract A {}"))

    with pytest.raises(FetchError) as excinfo:
        downloader.download("https://host/File.sol")

    assert excinfo.value.url == "https://host/File.sol"
    assert isinstance(excinfo.value.__cause__, OSError)
