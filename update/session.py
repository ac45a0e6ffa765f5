"""
Update session state shared by every stage of the updater.

A session owns the registry of temporary paths created while updating and
knows whether it runs as the original process or as the relaunched copy.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from constants import RunMode, SessionState
from helpers.logger import logger


@dataclass(frozen=True)
class SelfUpdateHandoff:
    """State handed from the original process to its relaunched copy."""

    parent_pid: int
    verbosity: str

    @classmethod
    def from_args(cls, values: list[str]) -> "SelfUpdateHandoff":
        if len(values) != 2:
            raise ValueError("expected a process id and a verbosity token")
        pid, verbosity = values
        parent_pid = int(pid)
        if parent_pid <= 0:
            raise ValueError(f"invalid process id: {pid}")
        return cls(parent_pid=parent_pid, verbosity=verbosity)

    def to_args(self) -> list[str]:
        return [str(self.parent_pid), self.verbosity]


class UpdateSession:
    def __init__(
        self,
        install_dir: Path | str,
        handoff: SelfUpdateHandoff | None = None,
    ):
        self.install_dir = Path(install_dir).resolve()
        self.handoff = handoff
        self.pid = os.getpid()
        self.state = SessionState.ACCUMULATING
        self.__temp_paths: list[Path] = []

    @property
    def run_mode(self) -> RunMode:
        return RunMode.CONTINUATION if self.handoff else RunMode.ORIGINAL

    @property
    def is_continuation(self) -> bool:
        return self.run_mode is RunMode.CONTINUATION

    @property
    def temp_paths(self) -> tuple[Path, ...]:
        return tuple(self.__temp_paths)

    def resolve(self, name: str | Path) -> Path:
        """Resolve a path relative to the installation directory."""
        return self.install_dir / name

    def register_temp(self, temp_path: Path | str) -> bool:
        """
        Any path registered here is removed when the session is drained.
        """
        temp_path = Path(temp_path)
        if self.state is SessionState.DRAINING:
            logger.warning(f"Session already drained, not registering {temp_path.name}")
            return False
        if not temp_path.exists():
            logger.warning(f"Trying to register a non-existing temporary file {temp_path.name}")
            return False
        if temp_path in self.__temp_paths:
            logger.debug(f"Temporary file {temp_path.name} is already registered")
            return False

        logger.debug(f"Registering temporary file {temp_path.name}")
        self.__temp_paths.append(temp_path)
        return True

    def begin_draining(self) -> tuple[Path, ...]:
        self.state = SessionState.DRAINING
        return self.temp_paths
