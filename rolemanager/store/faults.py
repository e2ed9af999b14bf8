"""Fault injection and simulated latency for the data access layer.

Both are plain values handed to :class:`~rolemanager.store.store.RoleStore`
so tests can run with no delay and a deterministic failure decision.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field

_MS_PER_SECOND = 1000


def valid_failure_rate(rate: float) -> bool:
    """Check that a failure rate is a probability.

    :param rate: Candidate failure rate
    :return: True if ``0 <= rate <= 1``
    """
    return 0.0 <= rate <= 1.0


@dataclass
class FaultInjector:
    """Decides whether a simulated remote call fails.

    :param failure_rate: Probability in ``[0, 1]`` that :meth:`should_fail`
        returns True
    :param rng: Random source, seed it for reproducible runs
    """

    failure_rate: float = 0.0
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self) -> None:
        if not valid_failure_rate(self.failure_rate):
            msg = f"Failure rate must be between 0 and 1, got: {self.failure_rate}"
            raise ValueError(msg)

    @classmethod
    def seeded(cls, failure_rate: float, seed: int | None) -> FaultInjector:
        """Create an injector whose decisions are reproducible for a seed."""
        return cls(failure_rate=failure_rate, rng=random.Random(seed))

    @classmethod
    def never(cls) -> FaultInjector:
        return cls(failure_rate=0.0)

    @classmethod
    def always(cls) -> FaultInjector:
        return cls(failure_rate=1.0)

    def should_fail(self) -> bool:
        if self.failure_rate <= 0.0:
            return False
        if self.failure_rate >= 1.0:
            return True
        return self.rng.random() < self.failure_rate


@dataclass(frozen=True)
class Latency:
    """Simulated network delays, in seconds, for each store operation."""

    users: float = 0.8
    roles: float = 0.3
    update: float = 0.5

    @classmethod
    def none(cls) -> Latency:
        return cls(users=0.0, roles=0.0, update=0.0)

    @classmethod
    def from_milliseconds(cls, users: int, roles: int, update: int) -> Latency:
        return cls(
            users=users / _MS_PER_SECOND,
            roles=roles / _MS_PER_SECOND,
            update=update / _MS_PER_SECOND,
        )


async def simulate_delay(seconds: float) -> None:
    """Suspend the current task to imitate a network round trip."""
    if seconds > 0:
        await asyncio.sleep(seconds)
