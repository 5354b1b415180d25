"""Password hashing and snapshot file I/O block, here is one thread pool executor to be shared by them.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

_global_thread_pool_executor: Optional[ThreadPoolExecutor] = None


def get() -> ThreadPoolExecutor:
    """Return the shared thread pool executor, create it if it does not exist."""
    global _global_thread_pool_executor
    if not _global_thread_pool_executor:
        _global_thread_pool_executor = ThreadPoolExecutor(
            None, "voidmail.utils.global_thread_pool_executor"
        )
    return _global_thread_pool_executor
