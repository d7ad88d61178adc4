from __future__ import annotations
from typing import Awaitable, Callable

# e.g. Request.is_disconnected
Abort = Callable[[], Awaitable[bool]]


async def aborted(abort: Abort | None) -> bool:
    return abort is not None and await abort()
