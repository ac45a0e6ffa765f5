"""
Update session orchestration.

download -> extract -> diff -> reconcile -> version file -> cleanup
"""

from pathlib import Path
from typing import Callable

from constants import ConfigKeys, UpdateOutcome
from helpers.configuration import ConfigService
from helpers.logger import VERBOSE, logger
from update.cleanup import CleanupCoordinator
from update.extractor import ArchiveExtractor, ReleaseBundle, staging_dir_for
from update.reconciler import FileReconciler
from update.release_diff import FileEntry, ReleaseDiff
from update.remote import ReleaseInfo, RemoteHandler
from update.session import UpdateSession
from update.version_file import VersionMarker


def remote_from_config() -> RemoteHandler:
    return RemoteHandler(
        repo=ConfigService.get_updater_conf(ConfigKeys.GITHUB_REPO),
        release_filename=ConfigService.get_updater_conf(ConfigKeys.RELEASE_FILENAME),
        timeout=ConfigService.get_updater_conf(ConfigKeys.REQUEST_TIMEOUT, float),
        download_retries=ConfigService.get_updater_conf(ConfigKeys.DOWNLOAD_RETRIES, int),
    )


class UpdateManager:
    def __init__(
        self,
        session: UpdateSession,
        remote: RemoteHandler | None = None,
        marker: VersionMarker | None = None,
    ):
        self.session = session
        self.remote = remote or remote_from_config()
        self.marker = marker or VersionMarker(
            session.resolve(ConfigService.get_updater_conf(ConfigKeys.VERSION_FILE))
        )
        self.extractor = ArchiveExtractor(session)
        self.diff = ReleaseDiff(session.install_dir)
        self.reconciler = FileReconciler()
        self.cleanup = CleanupCoordinator(session)

    @property
    def archive_path(self) -> Path:
        return self.session.resolve(self.remote.release_filename)

    def is_update_available(self, release: ReleaseInfo, force: bool = False) -> bool:
        installed = self.marker.read()
        if force or installed is None:
            return True

        tag, sha = installed
        if (tag, sha) == (release.tag, release.sha):
            logger.info(f"Current version {tag} is up to date")
            return False

        logger.info(f"Update available: {tag} -> {release.tag}")
        return True

    def show_changes(
        self, release: ReleaseInfo, confirm: Callable[[str], bool]
    ) -> None:
        """
        Offer to open a link listing what changed since the installed version.
        Skipped when there is no prior version, never fatal.
        """
        installed = self.marker.read()
        if installed is None:
            return

        compare_url = self.remote.get_compare_link(installed[1], release.sha)
        if compare_url is None:
            logger.warning("Unable to build the list of changes, continuing without it")
            return

        logger.info(f"Changes since your version: {compare_url}")
        if confirm("Would you like to see what's new in your browser?"):
            if not self.remote.browse_webpage(compare_url):
                logger.warning("Unable to open the browser, continuing with the update")

    def download_release(self, release: ReleaseInfo) -> Path | None:
        logger.info("📥 Downloading release files...")
        archive = self.archive_path
        success = self.remote.download_release(release.tag, archive)
        if archive.exists():
            self.session.register_temp(archive)
        return archive if success else None

    def extract_release_files(self, archive: Path) -> ReleaseBundle | None:
        logger.info("📦 Extracting release files...")
        return self.extractor.extract(archive, staging_dir_for(archive))

    def update_local_files(self, bundle: ReleaseBundle) -> list[FileEntry]:
        logger.info("🔄 Updating local files...")
        logger.debug(f"Comparing {bundle.archive.name} contents to {self.session.install_dir}")
        plan = self.diff.compare(bundle.root)
        if not plan.entries:
            logger.info("All local files are already up to date")
            return []

        added = sum(1 for entry in plan if entry.is_new)
        logger.info(f"{added} new and {len(plan) - added} changed files to update")
        logger.log(VERBOSE, f"Files to update: {', '.join(plan.names)}")

        applied = self.reconciler.apply(plan)
        skipped = len(plan) - len(applied)
        if skipped:
            logger.warning(f"Updated {len(applied)} files, {skipped} could not be updated")
        else:
            logger.info(f"Updated {len(applied)} files")
        return applied

    def update_version_file(self, release: ReleaseInfo) -> bool:
        logger.info("📝 Updating version file...")
        return self.marker.write(release.tag, release.sha)

    def perform_update(self, release: ReleaseInfo) -> UpdateOutcome:
        try:
            archive = self.download_release(release)
            if archive is None:
                return UpdateOutcome.FAILED

            bundle = self.extract_release_files(archive)
            if bundle is None:
                return UpdateOutcome.FAILED

            self.update_local_files(bundle)

            if not self.update_version_file(release):
                return UpdateOutcome.FAILED

            logger.info("🎉 You're all set, good luck on your adventures!")
            return UpdateOutcome.UPDATED
        finally:
            self.cleanup.finalize()
