import atexit
import os
import shlex
import shutil
import subprocess
from pathlib import Path

from constants import UNINSTALLER_STEM, SessionState
from helpers.logger import VERBOSE, logger, update_log_path
from update.self_replacer import current_executable, detached_popen_kwargs
from update.session import UpdateSession

IS_WINDOWS = os.name == "nt"

WINDOWS_SCRIPT = """@echo off
set "process={process}"
set "processname={process_name}"
set "logfile={logfile}"
echo Running uninstaller script >> "%logfile%"
:uninstall
ping -n 2 127.0.0.1 > nul
2>nul ren "%process%" "%processname%" && goto next || goto uninstall
:next
if exist "%process%" (
	echo Recycling temporary application file >> "%logfile%"
	del "%process%"
) else ( echo [ERROR] Unable to delete application file "%process%" >> "%logfile%" )
if exist "%~f0" (
	echo Recycling uninstaller script >> "%logfile%"
	del "%~f0"
) else ( echo [ERROR] Unable to delete uninstaller script "%~f0" >> "%logfile%" )
"""

POSIX_SCRIPT = """#!/bin/sh
process={process}
logfile={logfile}
pid={pid}
echo "Running uninstaller script" >> "$logfile"
while kill -0 "$pid" 2>/dev/null; do
	sleep 1
done
if [ -e "$process" ]; then
	echo "Recycling temporary application file" >> "$logfile"
	rm -f "$process"
else
	echo "[ERROR] Unable to delete application file $process" >> "$logfile"
fi
if [ -e "$0" ]; then
	echo "Recycling uninstaller script" >> "$logfile"
	rm -f "$0"
else
	echo "[ERROR] Unable to delete uninstaller script $0" >> "$logfile"
fi
"""


def quote_for_script(value: Path | str) -> str:
    """Make a path safe to embed in the uninstaller of the current platform."""
    if IS_WINDOWS:
        # Batch expands %name% even inside quotes, Windows paths can't hold '"'
        return str(value).replace("%", "%%")
    return shlex.quote(str(value))


class CleanupCoordinator:
    """
    Remove every temporary path registered during the session.

    Directories are deleted right away. Files may still be held open by this
    process, so they are deleted when the interpreter exits. When running as
    the relaunched copy, a generated script removes the copy's own executable
    once the process has let go of it.
    """

    def __init__(self, session: UpdateSession):
        self.session = session
        self.__exit_deletions: list[Path] = []
        self.__exit_hook_registered = False

    @property
    def pending_exit_deletions(self) -> tuple[Path, ...]:
        return tuple(self.__exit_deletions)

    def finalize(self) -> None:
        self.drain()
        if self.session.is_continuation:
            script = self.write_uninstaller(current_executable())
            if script is not None:
                self.launch_uninstaller(script)

    def drain(self) -> None:
        if self.session.state is SessionState.DRAINING:
            logger.warning("Temporary files were already recycled for this session")
            return

        logger.log(VERBOSE, "Recycling residual temporary files")
        for entry in self.session.begin_draining():
            if not entry.exists():
                continue

            logger.debug(f"Recycling entry: {entry.name}")
            try:
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    self.schedule_for_exit(entry)
            except OSError as e:
                logger.error(f"Unable to delete temporary file {entry.name}: {e}")

    def schedule_for_exit(self, file_path: Path) -> None:
        if not self.__exit_hook_registered:
            atexit.register(self.delete_pending)
            self.__exit_hook_registered = True
        self.__exit_deletions.append(file_path)

    def delete_pending(self) -> None:
        while self.__exit_deletions:
            file_path = self.__exit_deletions.pop(0)
            try:
                file_path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Unable to delete temporary file {file_path.name}: {e}")

    def uninstaller_path(self) -> Path:
        suffix = ".bat" if IS_WINDOWS else ".sh"
        return self.session.resolve(f"{UNINSTALLER_STEM}{suffix}")

    def render_uninstaller(self, target: Path) -> str:
        if IS_WINDOWS:
            return WINDOWS_SCRIPT.format(
                process=quote_for_script(target),
                process_name=quote_for_script(target.name),
                logfile=quote_for_script(update_log_path),
            )
        return POSIX_SCRIPT.format(
            process=quote_for_script(target),
            logfile=quote_for_script(update_log_path),
            pid=self.session.pid,
        )

    def write_uninstaller(self, target: Path) -> Path | None:
        """
        Write the script that deletes `target` once this process released it,
        then deletes itself.
        """
        script = self.uninstaller_path()
        try:
            with open(script, "w", encoding="utf-8", newline="") as writer:
                content = self.render_uninstaller(target)
                if IS_WINDOWS:
                    content = content.replace("\n", "\r\n")
                writer.write(content)
            if not IS_WINDOWS:
                script.chmod(0o755)
        except OSError as e:
            logger.error(f"Unable to create uninstaller script: {e}")
            return None
        return script

    def launch_uninstaller(self, script: Path) -> bool:
        command = ["cmd", "/c", str(script)] if IS_WINDOWS else ["/bin/sh", str(script)]
        logger.debug("Launching uninstaller script")
        try:
            subprocess.Popen(
                command,
                cwd=str(self.session.install_dir),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                **detached_popen_kwargs(),
            )
        except OSError as e:
            logger.error(f"Unable to launch uninstaller script: {e}")
            return False
        return True
