from dataclasses import dataclass, field
from pathlib import Path

from helpers.logger import VERBOSE, logger

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileEntry:
    name: str
    is_new: bool = False


@dataclass
class UpdatePlan:
    staging_root: Path
    local_root: Path
    entries: list[FileEntry] = field(default_factory=list)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self.entries]

    def staged_path(self, entry: FileEntry) -> Path:
        return self.staging_root / entry.name

    def local_path(self, entry: FileEntry) -> Path:
        return self.local_root / entry.name


def contents_equal(first: Path, second: Path) -> bool:
    """Byte-for-byte comparison, raising OSError if either file can't be read."""
    if first.stat().st_size != second.stat().st_size:
        return False

    with open(first, "rb") as a, open(second, "rb") as b:
        while True:
            chunk_a = a.read(CHUNK_SIZE)
            chunk_b = b.read(CHUNK_SIZE)
            if chunk_a != chunk_b:
                return False
            if not chunk_a:
                return True


class ReleaseDiff:
    """
    Compare release files with their local counterparts.

    Release archives are flat: only files directly inside the bundle root are
    considered, subdirectories are reported and skipped.
    """

    def __init__(self, local_root: Path | str):
        self.local_root = Path(local_root)

    def compare(self, bundle_root: Path | str) -> UpdatePlan:
        bundle_root = Path(bundle_root)
        plan = UpdatePlan(staging_root=bundle_root, local_root=self.local_root)

        for release_file in sorted(bundle_root.iterdir()):
            name = release_file.name
            if not release_file.is_file():
                logger.log(VERBOSE, f"Skipping release directory {name}")
                continue

            local_file = self.local_root / name
            if not local_file.exists():
                logger.log(VERBOSE, f"Local file {name} not found, going to update")
                plan.entries.append(FileEntry(name=name, is_new=True))
                continue

            logger.debug(f"Comparing {name} release to local version")
            try:
                if not contents_equal(release_file, local_file):
                    plan.entries.append(FileEntry(name=name))
            except OSError as e:
                logger.error(f"Unable to compare release file {name} to local version: {e}")
                continue

        return plan
