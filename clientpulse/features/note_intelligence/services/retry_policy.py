"""
Retry and failover policy for note processing jobs.

One table keyed by (attempt, provider) decides the next attempt, the
provider to use and the redelivery delay. Attempt 7 is terminal.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from clientpulse.features.note_intelligence.domain import Provider

MAX_ATTEMPTS = 7


@dataclass(frozen=True, slots=True)
class RetryStep:
    next_attempt: int
    next_provider: Provider
    delay_seconds: int


RETRY_POLICY: Mapping[tuple[int, Provider], RetryStep] = MappingProxyType(
    {
        (1, Provider.PRIMARY): RetryStep(2, Provider.PRIMARY, 120),
        (2, Provider.PRIMARY): RetryStep(3, Provider.PRIMARY, 240),
        (3, Provider.PRIMARY): RetryStep(4, Provider.FALLBACK, 30),
        (4, Provider.FALLBACK): RetryStep(5, Provider.FALLBACK, 30),
        (5, Provider.FALLBACK): RetryStep(6, Provider.FALLBACK, 60),
        (6, Provider.FALLBACK): RetryStep(7, Provider.FALLBACK, 120),
    }
)

_STEP_BY_ATTEMPT: Mapping[int, RetryStep] = MappingProxyType(
    {attempt: step for (attempt, _), step in RETRY_POLICY.items()}
)


def decide_retry(attempt: int, provider: Provider) -> RetryStep | None:
    """
    Next step after a failed attempt, or None when the job is exhausted.

    A provider that disagrees with the table for its attempt (e.g. a message
    edited by hand) follows the table row for that attempt.
    """
    step = RETRY_POLICY.get((attempt, provider))
    if step is not None:
        return step
    if attempt >= MAX_ATTEMPTS:
        return None
    return _STEP_BY_ATTEMPT.get(max(attempt, 1))
