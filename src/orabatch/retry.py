from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from orabatch.classifier import DEFAULT_RETRYABLE_CODES
from orabatch.exception import ValidationError


@dataclass(frozen=True)
class RetryPolicy:
    """How ``execute_with_retry`` reacts to conflict errors.

    ``max_retries`` is the total number of attempts. With the default
    ``backoff_multiplier`` of 1.0 every wait is ``retry_delay_ms``.
    """

    max_retries: int = 3
    retry_delay_ms: int = 1000
    backoff_multiplier: float = 1.0
    max_retry_delay_ms: Optional[int] = None
    retryable_error_codes: FrozenSet[str] = DEFAULT_RETRYABLE_CODES

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValidationError("max_retries: must be at least 1")
        if self.retry_delay_ms < 0:
            raise ValidationError("retry_delay_ms: must not be negative")
        if self.backoff_multiplier < 1:
            raise ValidationError("backoff_multiplier: must be at least 1")
        if (
            self.max_retry_delay_ms is not None
            and self.max_retry_delay_ms < 0
        ):
            raise ValidationError("max_retry_delay_ms: must not be negative")
        object.__setattr__(
            self, "retryable_error_codes", frozenset(self.retryable_error_codes)
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt"""
        delay = self.retry_delay_ms * (
            self.backoff_multiplier ** max(attempt - 1, 0)
        )
        if self.max_retry_delay_ms is not None:
            delay = min(delay, self.max_retry_delay_ms)
        return delay / 1000
