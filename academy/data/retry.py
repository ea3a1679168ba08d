import asyncio
import logging

from .errors import ErrorKind, TransientError
from .repository import Result

logger = logging.getLogger("retry")


async def retry_transient(operation, attempts: int = 3, delay: float = 0.2, label: str = "operation") -> Result:
    """Re-run ``operation`` while it reports a transient error.

    When every attempt fails the last error is replaced by one stating the
    action was not confirmed, so it is never mistaken for a success.
    """
    result = Result(None, TransientError(f"{label} was not attempted"))
    for attempt in range(1, max(1, attempts) + 1):
        result = await operation()
        if result.error is None or result.error.kind is not ErrorKind.TRANSIENT:
            return result
        logger.warning(f"{label} attempt {attempt}/{attempts} failed: {result.error.message}")
        if attempt < attempts:
            await asyncio.sleep(delay * attempt)
    return Result(None, TransientError(f"{label} not confirmed: {result.error.message}", code="ActionNotConfirmed"))
