from unittest.mock import MagicMock, patch

import pytest
import requests

from update.remote import ReleaseInfo, RemoteHandler


def json_response(payload: dict) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    return response


def stream_response(chunks: list[bytes]) -> MagicMock:
    response = MagicMock()
    response.iter_content.return_value = chunks
    context = MagicMock()
    context.__enter__.return_value = response
    context.__exit__.return_value = False
    return context


@pytest.fixture
def handler():
    remote = RemoteHandler(
        repo="mte-org/mte-updater",
        release_filename="mte-release.zip",
        timeout=10,
        download_retries=2,
    )
    remote.http = MagicMock()
    return remote


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("decorators.retry.time.sleep"):
        yield


class TestFetchLatestRelease:
    """Test cases for fetching the latest release metadata."""

    def test_fetch_latest_release(self, handler):
        """Test that the tag and its commit hash are resolved."""
        handler.http.get.side_effect = [
            json_response({"tag_name": "2.3"}),
            json_response({"sha": "abcd123"}),
        ]

        assert handler.fetch_latest_release() == ReleaseInfo(tag="2.3", sha="abcd123")
        urls = [call.args[0] for call in handler.http.get.call_args_list]
        assert urls == [
            "https://api.github.com/repos/mte-org/mte-updater/releases/latest",
            "https://api.github.com/repos/mte-org/mte-updater/commits/2.3",
        ]
        assert handler.http.get.call_args.kwargs["timeout"] == 10

    def test_network_error(self, handler):
        """Test that connection problems are reported as no release."""
        handler.http.get.side_effect = requests.ConnectionError("offline")
        assert handler.fetch_latest_release() is None

    def test_http_error(self, handler):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404")
        handler.http.get.return_value = response
        assert handler.fetch_latest_release() is None

    def test_unexpected_payload(self, handler):
        """Test that a payload without a tag is reported as no release."""
        handler.http.get.return_value = json_response({"message": "Not Found"})
        assert handler.fetch_latest_release() is None

    def test_session_headers(self):
        remote = RemoteHandler(repo="a/b", release_filename="b.zip")
        assert remote.http.headers["User-Agent"].startswith("mte-updater/")


class TestDownloadRelease:
    """Test cases for downloading the release archive."""

    def test_release_url(self, handler):
        assert handler.release_url("2.3") == (
            "https://github.com/mte-org/mte-updater/releases/download/2.3/mte-release.zip"
        )

    def test_download_release(self, handler, tmp_path):
        """Test that the archive is streamed to disk."""
        handler.http.get.return_value = stream_response([b"PK", b"\x03\x04", b""])
        destination = tmp_path / "mte-release.zip"

        assert handler.download_release("2.3", destination) is True
        assert destination.read_bytes() == b"PK\x03\x04"
        assert handler.http.get.call_args.kwargs["stream"] is True

    def test_download_retried(self, handler, tmp_path):
        """Test that a transient failure is retried."""
        handler.http.get.side_effect = [
            requests.ConnectionError("reset"),
            stream_response([b"data"]),
        ]
        destination = tmp_path / "mte-release.zip"

        assert handler.download_release("2.3", destination) is True
        assert handler.http.get.call_count == 2
        assert destination.read_bytes() == b"data"

    def test_download_fails_after_retries(self, handler, tmp_path):
        handler.http.get.side_effect = requests.ConnectionError("offline")

        assert handler.download_release("2.3", tmp_path / "mte-release.zip") is False
        assert handler.http.get.call_count == 2

    def test_download_write_error(self, handler, tmp_path):
        """Test that an unwritable destination fails the download."""
        handler.http.get.return_value = stream_response([b"data"])
        assert handler.download_release("2.3", tmp_path / "missing" / "a.zip") is False


class TestCompareLink:
    """Test cases for the changelog link."""

    def test_compare_link(self, handler):
        assert handler.get_compare_link("1111111", "abcd123") == (
            "https://github.com/mte-org/mte-updater/compare/1111111...abcd123"
        )

    @pytest.mark.parametrize("local, remote", [(None, "abc"), ("", "abc"), ("abc", None)])
    def test_missing_sha(self, handler, local, remote):
        assert handler.get_compare_link(local, remote) is None

    @patch("update.remote.webbrowser.open", return_value=True)
    def test_browse_webpage(self, mock_open):
        assert RemoteHandler.browse_webpage("https://example.com") is True
        mock_open.assert_called_once_with("https://example.com")

    @patch("update.remote.webbrowser.open")
    def test_browse_webpage_failure(self, mock_open):
        import webbrowser

        mock_open.side_effect = webbrowser.Error("no browser")
        assert RemoteHandler.browse_webpage("https://example.com") is False
