"""
Two-phase self update.

The original process copies its own executable to a temporary sibling,
launches that copy with the continuation flag and exits. The copy then waits
for the original to go away before touching any installation file.
"""

import os
import shutil
import subprocess
import sys
from pathlib import Path

import psutil

from constants import INSTALL_DIR_FLAG, TEMP_EXECUTABLE_TAG, UPDATE_SELF_FLAG
from helpers.logger import get_verbosity, logger
from update.session import SelfUpdateHandoff


def is_frozen() -> bool:
    return bool(getattr(sys, "frozen", False))


def current_executable() -> Path:
    """Path of the running program: the bundled executable or the entry script."""
    if is_frozen():
        return Path(sys.executable).resolve()
    return Path(sys.argv[0]).resolve()


def temp_copy_path(executable: Path) -> Path:
    # updater.exe -> updater.tmp.exe, main.py -> main.tmp.py
    return executable.with_name(f"{executable.stem}{TEMP_EXECUTABLE_TAG}{executable.suffix}")


def detached_popen_kwargs() -> dict:
    if os.name == "nt":
        return {
            "creationflags": subprocess.CREATE_NEW_PROCESS_GROUP
            | subprocess.DETACHED_PROCESS,
            "close_fds": True,
        }
    return {"start_new_session": True, "close_fds": True}


class SelfReplacer:
    def __init__(self, executable: Path | None = None, install_dir: Path | None = None):
        self.executable = executable or current_executable()
        self.install_dir = install_dir

    def build_command(self, copy_path: Path, handoff: SelfUpdateHandoff) -> list[str]:
        command = [str(copy_path)] if is_frozen() else [sys.executable, str(copy_path)]
        command += [UPDATE_SELF_FLAG, *handoff.to_args()]
        # The copy must update the same installation the user asked for
        if self.install_dir is not None:
            command += [INSTALL_DIR_FLAG, str(self.install_dir)]
        return command

    def relaunch(self) -> None:
        """
        Hand the update over to a temporary copy of this application.
        Never returns: exits with 0 once the copy is running, 1 otherwise.
        """
        copy_path = temp_copy_path(self.executable)
        logger.debug("Creating a temporary copy of application")
        try:
            shutil.copy2(self.executable, copy_path)
        except OSError as e:
            logger.error(f"Unable to create a copy of this application: {e}")
            sys.exit(1)

        handoff = SelfUpdateHandoff(parent_pid=os.getpid(), verbosity=get_verbosity())
        command = self.build_command(copy_path, handoff)
        logger.debug(f"Launching {copy_path.name} to continue the update")
        try:
            subprocess.Popen(
                command, cwd=str(self.executable.parent), **detached_popen_kwargs()
            )
        except OSError as e:
            logger.error(f"Unable to launch {copy_path.name}: {e}")
            sys.exit(1)

        # Exit gracefully, the copy is responsible for everything from here
        sys.exit(0)

    @staticmethod
    def await_parent_exit(handoff: SelfUpdateHandoff, timeout: float) -> bool:
        """
        Block until the original process has exited, at most `timeout` seconds.
        """
        try:
            parent = psutil.Process(handoff.parent_pid)
        except psutil.NoSuchProcess:
            return True

        logger.debug(f"Waiting for process {handoff.parent_pid} to exit")
        try:
            parent.wait(timeout=timeout)
        except psutil.TimeoutExpired:
            logger.warning(
                f"Process {handoff.parent_pid} is still running after {timeout}s, "
                "files it holds may fail to update"
            )
            return False
        except psutil.Error as e:
            logger.warning(f"Unable to wait for process {handoff.parent_pid}: {e}")
            return False
        return True
