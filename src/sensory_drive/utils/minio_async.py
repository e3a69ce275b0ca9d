import asyncio
from functools import partial
from typing import Callable, TypeVar

T = TypeVar("T")


async def run_io_bound(func: Callable[..., T], *args, **kwargs) -> T:
    """SDK MinIO синхронный: выполняем вызов в пуле потоков, не блокируя event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))
