"""
Retry Manager for the domain list synchronization engine.

Request code never retries by calling itself again. Each request is a
single attempt function returning a tagged ``AttemptResult`` and the
manager runs it inside a bounded loop, sleeping with exponential backoff
between retryable failures.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .audit_logger import AuditLogger
from .config import RetryConfig
from .enums import AttemptOutcome

T = TypeVar("T")


@dataclass
class AttemptResult(Generic[T]):
    """Tagged result of one request attempt."""

    outcome: AttemptOutcome
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: T) -> "AttemptResult[T]":
        return cls(outcome=AttemptOutcome.SUCCESS, value=value)

    @classmethod
    def retryable(cls, error: Exception) -> "AttemptResult[T]":
        return cls(outcome=AttemptOutcome.RETRYABLE, error=error)

    @classmethod
    def fatal(cls, error: Exception) -> "AttemptResult[T]":
        return cls(outcome=AttemptOutcome.FATAL, error=error)


@dataclass
class RetryResult(Generic[T]):
    """Result of a retry operation."""

    success: bool
    result: Optional[T]
    attempts: int
    last_error: Optional[Exception]


class RetryManager:
    """
    Runs attempt functions with exponential backoff.

    With the defaults (3 attempts, 1 s base, 30 s cap) a persistently failing
    operation is tried three times with waits of 1 s and 2 s in between.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or RetryConfig()
        self._sleep = sleep
        self._logger = logger

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate wait time with exponential backoff.

        delay(n) = base_delay * 2^n, capped at max_delay.

        Args:
            attempt: The failed attempt number (0-indexed)
        """
        delay = self._config.base_delay_seconds * (2 ** attempt)
        return min(delay, self._config.max_delay_seconds)

    async def run(
        self,
        operation: Callable[[], Awaitable[AttemptResult[T]]],
        label: str = "operation",
    ) -> RetryResult[T]:
        """
        Execute an attempt function until it succeeds, fails fatally, or the
        attempt budget is spent.

        Args:
            operation: Async function performing exactly one attempt
            label: Name used in log messages

        Returns:
            RetryResult with the value of the successful attempt, if any
        """
        last_error: Optional[Exception] = None
        attempts = 0

        while attempts < self._config.max_attempts:
            result = await operation()
            attempts += 1

            if result.outcome == AttemptOutcome.SUCCESS:
                return RetryResult(
                    success=True,
                    result=result.value,
                    attempts=attempts,
                    last_error=None,
                )

            last_error = result.error
            if result.outcome == AttemptOutcome.FATAL:
                break

            if attempts >= self._config.max_attempts:
                break

            delay = self._calculate_delay(attempts - 1)
            if self._logger:
                self._logger.debug(
                    "RetryManager",
                    f"Retrying {label} after backoff",
                    {
                        "delay_seconds": delay,
                        "attempt": attempts + 1,
                        "max_attempts": self._config.max_attempts,
                        "error": str(last_error) if last_error else None,
                    },
                )
            await self._sleep(delay)

        return RetryResult(
            success=False,
            result=None,
            attempts=attempts,
            last_error=last_error,
        )
