from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from toxiclient.model.errors import ServerUnreachableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    base_delay_s: float = 0.05
    max_delay_s: float = 0.25

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")

async def with_retries(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    retry_on: Tuple[Type[BaseException], ...] = (ServerUnreachableError,),
) -> T:
    last_exc: BaseException | None = None
    delay = policy.base_delay_s
    for attempt in range(1, policy.attempts + 1):
        try:
            return await fn()
        except retry_on as e:
            last_exc = e
            if attempt == policy.attempts:
                break
            logger.debug(f"attempt {attempt}/{policy.attempts} failed ({e}); retrying in {delay}s")
            await asyncio.sleep(delay)
            delay = min(policy.max_delay_s, delay * 2)
    assert last_exc is not None
    raise last_exc
