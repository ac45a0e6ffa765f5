import time
from functools import wraps

from helpers.logger import logger


def retry(
    attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
):
    """
    Retry decorator: calls the function up to `attempts` times, sleeping
    `delay * backoff ** n` seconds between failed attempts.
    The last exception is re-raised once every attempt has failed.
    """

    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts - 1:
                        raise
                    wait = delay * (backoff**attempt)
                    logger.warning(
                        f"{func.__name__} failed (attempt {attempt + 1}/{attempts}): {e}"
                        f" - retrying in {wait:.1f}s"
                    )
                    time.sleep(wait)

        return wrapper

    return decorator
