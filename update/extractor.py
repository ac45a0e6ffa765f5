import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath

from helpers.logger import logger
from update.session import UpdateSession


class UnsafeArchiveError(zipfile.BadZipFile):
    """Raised when an archive entry would be written outside the destination."""


@dataclass(frozen=True)
class ReleaseBundle:
    archive: Path
    root: Path


def staging_dir_for(archive: Path | str) -> Path:
    """The release is unpacked next to the archive, named after it without extension."""
    archive = Path(archive)
    return archive.with_suffix("")


class ArchiveExtractor:
    def __init__(self, session: UpdateSession):
        self.session = session

    def extract(self, archive: Path | str, destination: Path | str) -> ReleaseBundle | None:
        archive, destination = Path(archive), Path(destination)
        try:
            with zipfile.ZipFile(archive, "r") as zipf:
                members = zipf.infolist()
                for member in members:
                    self._check_member(member.filename, destination)

                destination.mkdir(parents=True, exist_ok=True)
                for member in members:
                    zipf.extract(member, destination)

        except UnsafeArchiveError as e:
            logger.error(f"Refusing to extract {archive.name}: {e}")
            return None
        except (zipfile.BadZipFile, OSError) as e:
            logger.error(f"Unable to extract release archive {archive.name}: {e}")
            if destination.exists():
                self.session.register_temp(destination)
            return None

        logger.info(f"Extracted {len(members)} entries to {destination.name}")
        self.session.register_temp(destination)
        return ReleaseBundle(archive=archive, root=destination)

    @staticmethod
    def _check_member(name: str, destination: Path) -> None:
        if PurePosixPath(name).is_absolute() or PureWindowsPath(name).drive:
            raise UnsafeArchiveError(f"absolute entry path '{name}'")

        root = destination.resolve()
        target = (root / name).resolve()
        if target != root and root not in target.parents:
            raise UnsafeArchiveError(f"entry '{name}' escapes the destination directory")
