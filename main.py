import argparse
import sys
from pathlib import Path

from constants import (
    APP_NAME,
    INSTALL_DIR_FLAG,
    UPDATE_SELF_FLAG,
    ConfigKeys,
    RunMode,
    UpdateOutcome,
)
from helpers.configuration import ConfigService
from helpers.logger import logger, set_verbosity
from update.self_replacer import SelfReplacer, current_executable
from update.session import SelfUpdateHandoff, UpdateSession
from update.update_manager import UpdateManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="Update the local installation to the latest release"
    )
    parser.add_argument(
        INSTALL_DIR_FLAG,
        dest="install_dir",
        help="Installation directory (defaults to the application directory)",
    )
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Update without prompting, the list of changes is not opened"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Update even if the installed version is the latest",
    )
    parser.add_argument(
        "--check", action="store_true", help="Only report whether an update is available"
    )
    parser.add_argument(
        "--in-place",
        action="store_true",
        help="Update from this process instead of relaunching a temporary copy",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_const", const="verbose", dest="verbosity"
    )
    verbosity.add_argument(
        "-d", "--debug", action="store_const", const="debug", dest="verbosity"
    )
    parser.add_argument(
        UPDATE_SELF_FLAG,
        nargs=2,
        metavar=("PID", "VERBOSITY"),
        dest="update_self",
        help=argparse.SUPPRESS,
    )
    return parser


class Application:

    @property
    def run_mode(self) -> RunMode:
        return self.session.run_mode

    def __init__(self, args: argparse.Namespace):
        self.args = args
        handoff = (
            SelfUpdateHandoff.from_args(args.update_self) if args.update_self else None
        )
        set_verbosity(handoff.verbosity if handoff else args.verbosity or "normal")

        install_dir = (
            Path(args.install_dir) if args.install_dir else current_executable().parent
        )
        self.session = UpdateSession(install_dir=install_dir, handoff=handoff)
        self.manager = UpdateManager(self.session)

    def bootstrap(self) -> int:
        logger.info(f"{APP_NAME} started in {self.run_mode.value} mode")
        match self.run_mode:
            case RunMode.CONTINUATION:
                outcome = self.__continue_update()
            case _:
                outcome = self.__start_update()

        if outcome is UpdateOutcome.FAILED:
            logger.error("❌ Update failed!")
        return outcome.exit_code

    def __confirm(self, question: str, assume: bool = True) -> bool:
        if self.args.yes:
            return assume
        try:
            answer = input(f"{question} (y/N): ")
        except EOFError:
            return False
        return answer.strip().lower().startswith("y")

    def __start_update(self) -> UpdateOutcome:
        logger.info("🔍 Checking for updates...")
        release = self.manager.remote.fetch_latest_release()
        if release is None:
            return UpdateOutcome.FAILED

        if not self.manager.is_update_available(release, force=self.args.force):
            return UpdateOutcome.UP_TO_DATE
        if self.args.check:
            logger.info(f"Release {release.tag} is available")
            return UpdateOutcome.UP_TO_DATE

        # Unattended runs never open a browser
        self.manager.show_changes(
            release, lambda question: self.__confirm(question, assume=False)
        )
        if not self.__confirm(f"Update to release {release.tag} now?"):
            logger.info("Update cancelled")
            return UpdateOutcome.CANCELLED

        if self.args.in_place:
            return self.manager.perform_update(release)

        SelfReplacer(install_dir=self.session.install_dir).relaunch()
        return UpdateOutcome.UPDATED  # unreachable, relaunch() exits

    def __continue_update(self) -> UpdateOutcome:
        SelfReplacer.await_parent_exit(
            self.session.handoff,
            timeout=ConfigService.get_updater_conf(ConfigKeys.PARENT_EXIT_TIMEOUT, float),
        )
        release = self.manager.remote.fetch_latest_release()
        if release is None:
            # Still remove the temporary copy of the application
            self.manager.cleanup.finalize()
            return UpdateOutcome.FAILED
        return self.manager.perform_update(release)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.update_self:
        try:
            SelfUpdateHandoff.from_args(args.update_self)
        except ValueError as e:
            parser.error(f"{UPDATE_SELF_FLAG}: {e}")

    try:
        return Application(args).bootstrap()
    except KeyboardInterrupt:
        logger.info("Update interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
