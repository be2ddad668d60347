import logging
from typing import Callable, TypeVar

from ..errors import InvalidFilterError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_fallback(primary: Callable[[], T], fallback: Callable[[], T], label: str) -> T:
    """
    Run `primary`; on any failure other than a caller-side filter error,
    log and return `fallback()` instead.
    """
    try:
        return primary()
    except InvalidFilterError:
        raise
    except Exception as e:
        logger.warning(f"[Fallback] {label} failed, using fallback: {type(e).__name__}: {e}")
        return fallback()


def empty_list() -> list:
    return []
