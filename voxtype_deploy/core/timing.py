"""
Performance timing utilities for debugging.

This module provides a decorator measuring execution time of the slow steps
of a resolution pass (model fetch, config compilation) when the
VOXDEPLOY_DEBUG environment variable is set.
"""

import functools
import sys
import time
from typing import Callable, ParamSpec, TypeVar

from .config import config

P = ParamSpec("P")
R = TypeVar("R")


def timer(func: Callable[P, R]) -> Callable[P, R]:
    """
    Decorator that reports execution time when VOXDEPLOY_DEBUG is on.

    The flag is read on every call, so enabling debug after import (--debug,
    an --env-file) still reports timings.

    Args:
        func: Function to measure

    Returns:
        Wrapped function that reports timing if debug is enabled
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if not config.debug:
            return func(*args, **kwargs)

        start_time = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            print(f"[VOXDEPLOY_DEBUG] {func.__qualname__}: {elapsed_ms:.2f}ms", file=sys.stderr)

    return wrapper
