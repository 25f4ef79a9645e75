"""Rolling request budget for the breach lookup service.

``RateBudget`` is an immutable value: every operation returns a new budget.
Time is passed in by the caller, so tests can drive it with a fake clock.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

WINDOW_SECONDS = 60.0


class RateBudget(BaseModel):
    model_config = ConfigDict(frozen=True)

    limit: int
    remaining: int
    window_reset_at: float

    @classmethod
    def start(cls, limit: int, now: float) -> "RateBudget":
        return cls(limit=limit, remaining=limit, window_reset_at=now + WINDOW_SECONDS)

    def refresh(self, now: float) -> "RateBudget":
        """Open a new window once the current one has elapsed."""
        if now >= self.window_reset_at:
            return RateBudget.start(self.limit, now)
        return self

    def wait_time(self, now: float) -> float:
        """Seconds to wait before the next call is allowed (0 if allowed now)."""
        budget = self.refresh(now)
        if budget.remaining > 0:
            return 0.0
        return max(0.0, budget.window_reset_at - now)

    def consume(self, now: float) -> "RateBudget":
        budget = self.refresh(now)
        return budget.model_copy(update={"remaining": max(0, budget.remaining - 1)})
