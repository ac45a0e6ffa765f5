from pathlib import Path

from helpers.logger import logger


class VersionMarker:
    """Local `<tag> <sha>` record of the installed release."""

    def __init__(self, marker_path: Path | str):
        self.path = Path(marker_path)

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> tuple[str, str] | None:
        """
        Return the installed (tag, sha), or None when there is no prior version.
        """
        if not self.exists:
            logger.debug(f"Version file {self.path.name} not found")
            return None
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except OSError as e:
            logger.error(f"Unable to read version file {self.path.name}: {e}")
            return None

        parts = content.split()
        if len(parts) != 2:
            if content:
                logger.warning(f"Malformed version file {self.path.name}: '{content}'")
            return None
        return parts[0], parts[1]

    def write(self, tag: str, sha: str) -> bool:
        try:
            self.path.write_text(f"{tag} {sha}", encoding="utf-8")
            return True
        except OSError as e:
            logger.error(f"Unable to write version file {self.path.name}: {e}")
            return False
