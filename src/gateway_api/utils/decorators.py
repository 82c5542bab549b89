"""Decorator utilities for cross-cutting concerns."""
import time
import logging
import functools
from typing import Any, Callable, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def async_log_upload_time(func: F) -> F:
    """Decorator to log how long an async upload took, with the stored key and size.

    The wrapped coroutine takes the `UploadFile` as its first argument and
    returns an `UploadedFile`.

    Args:
        func: The async upload function to decorate

    Returns:
        Decorated async function that logs the outcome of each upload
    """
    @functools.wraps(func)
    async def wrapper(upload, *args, **kwargs):
        start_time = time.time()
        try:
            result = await func(upload, *args, **kwargs)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"Upload of {upload.filename!r} failed after {duration:.2f}s: {str(e)}")
            raise
        duration = time.time() - start_time
        logger.info(f"Stored {result.file_key} ({result.file_size} bytes, {result.mime_type}) in {duration:.2f}s")
        return result
    return cast(F, wrapper)
