import webbrowser
from dataclasses import dataclass
from pathlib import Path

import requests

from constants import APP_NAME
from decorators.retry import retry
from helpers.logger import logger

GITHUB_API_URL = "https://api.github.com/repos"
GITHUB_URL = "https://github.com"
USER_AGENT = f"{APP_NAME}/1.0"


@dataclass(frozen=True)
class ReleaseInfo:
    tag: str
    sha: str


class RemoteHandler:
    def __init__(
        self,
        repo: str,
        release_filename: str,
        timeout: float = 30,
        download_retries: int = 3,
    ):
        self.repo = repo
        self.release_filename = release_filename
        self.timeout = timeout
        self.download_retries = max(1, download_retries)
        self.http = requests.Session()
        self.http.headers.update(
            {"User-Agent": USER_AGENT, "Accept": "application/vnd.github+json"}
        )

    def _get_json(self, url: str) -> dict:
        response = self.http.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def fetch_latest_release(self) -> ReleaseInfo | None:
        """Tag and commit hash of the latest published release."""
        try:
            release = self._get_json(f"{GITHUB_API_URL}/{self.repo}/releases/latest")
            tag = release["tag_name"]
            commit = self._get_json(f"{GITHUB_API_URL}/{self.repo}/commits/{tag}")
            return ReleaseInfo(tag=tag, sha=commit["sha"])
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.error(f"Unable to fetch latest release information: {e}")
            return None

    def release_url(self, tag: str) -> str:
        return f"{GITHUB_URL}/{self.repo}/releases/download/{tag}/{self.release_filename}"

    def download_release(self, tag: str, destination: Path | str) -> bool:
        destination = Path(destination)
        url = self.release_url(tag)

        @retry(attempts=self.download_retries, exceptions=(requests.RequestException,))
        def _download():
            logger.debug(f"Downloading file {destination.name} from {url}")
            with self.http.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(destination, "wb") as file:
                    for chunk in response.iter_content(chunk_size=8192):
                        file.write(chunk)

        try:
            _download()
        except (requests.RequestException, OSError) as e:
            logger.error(f"Unable to download release {tag}: {e}")
            return False

        if not destination.is_file():
            logger.error(f"Unable to find downloaded file {destination.name}")
            return False
        return True

    def get_compare_link(self, local_sha: str | None, remote_sha: str | None) -> str | None:
        if not local_sha or not remote_sha:
            return None
        return f"{GITHUB_URL}/{self.repo}/compare/{local_sha}...{remote_sha}"

    @staticmethod
    def browse_webpage(url: str) -> bool:
        try:
            return webbrowser.open(url)
        except webbrowser.Error as e:
            logger.warning(f"Unable to open {url}: {e}")
            return False
