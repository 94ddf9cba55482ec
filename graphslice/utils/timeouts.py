"""
Deadline enforcement for blocking calls into external collaborators
"""
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

from graphslice.exceptions import ProviderTimeout


def call_with_timeout(func, timeout, *args, operation=None, **kwargs):
    """
    Run func(*args, **kwargs) and give up after `timeout` seconds

    The worker thread is abandoned on timeout; its result is discarded.

    Args:
        func: Blocking callable
        timeout: Deadline in seconds, or None to wait indefinitely

    Raises:
        ProviderTimeout: if func did not return in time
    """
    if timeout is None:
        return func(*args, **kwargs)

    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        raise ProviderTimeout(operation or getattr(func, '__name__', 'call'), timeout)
    finally:
        executor.shutdown(wait=False)
