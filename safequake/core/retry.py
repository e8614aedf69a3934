"""Retry/backoff policy - Pure functions.

One policy is applied at the dispatch boundary (Telegram sends). The shell
performs the waiting; this module only decides whether and how long.
"""

from dataclasses import dataclass


# HTTP statuses worth another attempt
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff configuration.

    Attributes:
        max_attempts: Total attempts including the first one (1 = no retry)
        base_delay_seconds: Delay after the first failure
        multiplier: Growth factor per failed attempt
        max_delay_seconds: Upper bound for any single delay
    """
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    multiplier: float = 2.0
    max_delay_seconds: float = 30.0


@dataclass(frozen=True)
class RetryDecision:
    """Whether to try again and how long to wait first.

    Attributes:
        retry: True if another attempt should be made
        delay_seconds: Wait before the next attempt
        reason: Human-readable explanation
    """
    retry: bool
    delay_seconds: float
    reason: str


def is_retryable_status(status_code: int) -> bool:
    """Pure function."""
    return status_code in RETRYABLE_STATUS_CODES


def backoff_delay(
    attempt: int,
    policy: RetryPolicy,
    retry_after: float | None = None,
) -> float:
    """Delay after ``attempt`` failed attempts.

    Pure function. A server-provided ``retry_after`` wins over the
    computed delay, but is still capped by ``max_delay_seconds``.

    Args:
        attempt: Number of attempts made so far (1-based)
        policy: Retry policy
        retry_after: Seconds requested by the server, if any

    Returns:
        Delay in seconds
    """
    if retry_after is not None and retry_after >= 0:
        return min(float(retry_after), policy.max_delay_seconds)

    delay = policy.base_delay_seconds * (policy.multiplier ** max(attempt - 1, 0))
    return min(delay, policy.max_delay_seconds)


def decide_retry(
    attempt: int,
    policy: RetryPolicy,
    status_code: int | None = None,
    retry_after: float | None = None,
) -> RetryDecision:
    """Decide whether a failed attempt should be retried.

    Pure function.

    Args:
        attempt: Number of attempts made so far (1-based)
        policy: Retry policy
        status_code: HTTP status of the failed attempt, None for a
            transport error (timeout, connection reset)
        retry_after: Seconds requested by the server, if any

    Returns:
        RetryDecision
    """
    if attempt >= policy.max_attempts:
        return RetryDecision(
            retry=False,
            delay_seconds=0.0,
            reason=f"Gave up after {attempt}/{policy.max_attempts} attempts",
        )

    if status_code is not None and not is_retryable_status(status_code):
        return RetryDecision(
            retry=False,
            delay_seconds=0.0,
            reason=f"HTTP {status_code} is not retryable",
        )

    delay = backoff_delay(attempt, policy, retry_after)
    cause = "transport error" if status_code is None else f"HTTP {status_code}"
    return RetryDecision(
        retry=True,
        delay_seconds=delay,
        reason=f"Retrying after {cause} in {delay:.1f}s",
    )
