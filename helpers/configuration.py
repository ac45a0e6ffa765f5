from configparser import ConfigParser
from enum import Enum
from os import path
from typing import Any, Callable

from constants import ConfigKeys
from helpers.logger import logger


class ConfigSection(Enum):
    UPDATER = "UPDATER"


__defaults__ = {
    ConfigKeys.GITHUB_REPO.value: "mte-org/mte-updater",
    ConfigKeys.RELEASE_FILENAME.value: "mte-release.zip",
    ConfigKeys.VERSION_FILE.value: "mte-version.txt",
    ConfigKeys.REQUEST_TIMEOUT.value: "30",
    ConfigKeys.DOWNLOAD_RETRIES.value: "3",
    ConfigKeys.PARENT_EXIT_TIMEOUT.value: "30",
}

__cfg_file__ = path.abspath(
    path.join(path.dirname(path.abspath(__file__)), "../.config")
)
if not path.exists(__cfg_file__):
    with open(__cfg_file__, "w", encoding="utf-8") as configfile:
        configfile.write(f"[{ConfigSection.UPDATER.value}]\n")
        for key, value in __defaults__.items():
            configfile.write(f"{key} = {value}\n")
__configs__ = ConfigParser()
__configs__.read(filenames=__cfg_file__)


class ConfigService:
    @staticmethod
    def get_conf(
        section: str,
        key: str,
        default: Any = None,
        serializer: Callable[[str], Any] | None = None,
    ) -> Any:
        if __configs__.has_option(section, key):
            value = __configs__.get(section, key, fallback=default)
            if serializer and callable(serializer):
                try:
                    return serializer(value)
                except ValueError:
                    logger.warning(
                        f"Config key {key} has an invalid value '{value}', using default"
                    )
                    return default
            return value

        logger.warning(f"Config key {key} not found in section {section}")
        return default

    @staticmethod
    def get_updater_conf(
        key: ConfigKeys, serializer: Callable[[str], Any] | None = None
    ) -> Any:
        """
        Read an updater setting, falling back to the built-in default.
        """
        default = __defaults__[key.value]
        return ConfigService.get_conf(
            section=ConfigSection.UPDATER.value,
            key=key.value,
            default=serializer(default) if serializer else default,
            serializer=serializer,
        )
