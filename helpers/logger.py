import logging
import os

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")


class CustomFormatter(logging.Formatter):
    # Define colors for each level
    __COLORS = {
        "DEBUG": "\033[94m",  # Blue color
        "VERBOSE": "\033[96m",  # Cyan color
        "INFO": "\033[92m",  # Green color
        "WARNING": "\033[93m",  # Yellow color
        "ERROR": "\033[91m",  # Red color
        "CRITICAL": "\033[91m",  # Red color
    }
    __RESET = "\033[0m"  # Reset color

    def format(self, record):
        # Make a copy of the record to avoid modifying the original
        record_copy = logging.makeLogRecord(record.__dict__)
        levelname = record_copy.levelname
        color = self.__COLORS.get(levelname, "")

        record_copy.levelname = f"{color}{levelname}{self.__RESET}"

        return super().format(record_copy)


# Verbosity tokens accepted on the command line and forwarded to the relaunched copy
VERBOSITY_LEVELS = {
    "normal": logging.INFO,
    "verbose": VERBOSE,
    "debug": logging.DEBUG,
}
DEFAULT_VERBOSITY = "normal"

# Create logs directory if it doesn't exist
log_dir = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs"
)
os.makedirs(log_dir, exist_ok=True)

# Update log path, shared with the generated uninstall script
update_log_path = os.path.join(log_dir, "updater.log")

# Create logger
logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

# Create console handler to display logs on console
console_handler = logging.StreamHandler()
console_handler.setLevel(VERBOSITY_LEVELS[DEFAULT_VERBOSITY])

console_handler.setFormatter(
    CustomFormatter(
        "\033[90m%(asctime)s\033[0m - [%(levelname)s] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)

# Create file handler to write logs to file
file_handler = logging.FileHandler(
    filename=update_log_path,
    mode="a",
    encoding="utf-8",
)
file_handler.setLevel(logging.DEBUG)  # Keep the full session trace on disk
file_handler.setFormatter(
    logging.Formatter(
        fmt="%(asctime)s - [%(levelname)s] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)

# Ensure handlers are not added multiple times if file is imported multiple times
if not logger.handlers:
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

__verbosity__ = {"token": DEFAULT_VERBOSITY}


def set_verbosity(token: str | None) -> str:
    """
    Apply a verbosity token to the console output and remember it so it can be
    handed over to a relaunched copy of the application.
    """
    if token not in VERBOSITY_LEVELS:
        logger.warning(f"Unknown verbosity '{token}', using '{DEFAULT_VERBOSITY}'")
        token = DEFAULT_VERBOSITY

    console_handler.setLevel(VERBOSITY_LEVELS[token])
    __verbosity__["token"] = token
    return token


def get_verbosity() -> str:
    return __verbosity__["token"]
