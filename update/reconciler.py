import shutil

from helpers.logger import VERBOSE, logger
from update.release_diff import FileEntry, UpdatePlan


class FileReconciler:
    """
    Copy changed release files over the local installation.

    Files are replaced one by one and a failure only skips that file, so a
    failed run may leave the installation partially updated.
    """

    def apply(self, plan: UpdatePlan) -> list[FileEntry]:
        logger.log(VERBOSE, f"Preparing to update {len(plan)} release files...")
        applied: list[FileEntry] = []

        for entry in plan:
            source = plan.staged_path(entry)
            target = plan.local_path(entry)

            if not source.is_file():
                logger.error(f"Unable to find release file {entry.name}!")
                continue

            logger.debug(f"Updating local file {entry.name}")
            logger.debug(f"Destination path: {target}")
            try:
                shutil.copy2(source, target)
            except OSError as e:
                logger.error(f"Unable to overwrite local release file {target.name}: {e}")
                continue

            applied.append(entry)

        return applied
