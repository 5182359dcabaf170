"""
downloader/rate_limit.py
One-shot rate limit check, evaluated against the at-home server headers
before any page of a chapter is requested.
"""

import asyncio
import enum

from rich.console import Console

console = Console()


class GateDecision(enum.Enum):
    PROCEED = "proceed"
    ABORT = "abort"


class ProceedPolicy:
    """Treat the limit as advisory."""

    async def on_limit_reached(self, retry_after: float) -> bool:
        return False


class AbortPolicy:
    """Give up on the chapter whenever the limit is exhausted."""

    async def on_limit_reached(self, retry_after: float) -> bool:
        return True


class WaitPolicy:
    """Stall for the advertised window, unless it is longer than max_wait."""

    def __init__(self, max_wait: float = 60.0, sleep=asyncio.sleep):
        self.max_wait = max_wait
        self._sleep = sleep

    async def on_limit_reached(self, retry_after: float) -> bool:
        if retry_after > self.max_wait:
            return True
        if retry_after > 0:
            console.log(f"⏳ Waiting {retry_after:.1f}s for rate limit window")
            await self._sleep(retry_after)
        return False


POLICIES = {
    "proceed": ProceedPolicy,
    "abort": AbortPolicy,
    "wait": WaitPolicy,
}


def policy_from_config(config):
    name = config.rate_limit_policy
    if name not in POLICIES:
        raise ValueError(f"Unknown rate limit policy: {name!r}")
    if name == "wait":
        return WaitPolicy(max_wait=config.rate_limit_max_wait)
    return POLICIES[name]()


class RateLimitGate:
    """
    Decide whether a chapter fetch may start.

    The policy's ``on_limit_reached(retry_after)`` returns True to mean
    "wait and retry later", which aborts the current fetch. Without a
    policy an exhausted limit is not enforced.
    """

    def __init__(self, policy=None):
        self.policy = policy

    async def admit(self, remaining: int, retry_after: float) -> GateDecision:
        if remaining > 0:
            return GateDecision.PROCEED
        console.log(f"⚠️ Rate limit reached (retry after {retry_after:.1f}s)")
        if self.policy is not None and await self.policy.on_limit_reached(retry_after):
            return GateDecision.ABORT
        return GateDecision.PROCEED
