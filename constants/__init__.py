from enum import Enum, unique


@unique
class RunMode(Enum):
    ORIGINAL = "original"
    CONTINUATION = "continuation"


@unique
class SessionState(Enum):
    ACCUMULATING = "accumulating"
    DRAINING = "draining"


@unique
class UpdateOutcome(Enum):
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        return 1 if self is UpdateOutcome.FAILED else 0


@unique
class ConfigKeys(Enum):
    GITHUB_REPO = "github_repo"
    RELEASE_FILENAME = "release_filename"
    VERSION_FILE = "version_file"
    REQUEST_TIMEOUT = "request_timeout"
    DOWNLOAD_RETRIES = "download_retries"
    PARENT_EXIT_TIMEOUT = "parent_exit_timeout"


APP_NAME = "mte-updater"
UPDATE_SELF_FLAG = "--update-self"
INSTALL_DIR_FLAG = "--install-dir"
TEMP_EXECUTABLE_TAG = ".tmp"
UNINSTALLER_STEM = f"{APP_NAME}-uninstall"
