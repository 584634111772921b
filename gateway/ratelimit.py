# gateway/ratelimit.py
# Fixed-window, per-client limiters built on `limits` (the engine behind Flask-Limiter).
# Each WindowLimiter owns its own in-memory storage; counters never leak across instances.

import math
import time
from dataclasses import dataclass
from typing import Dict, Optional

from flask import Response, jsonify
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter


@dataclass(frozen=True)
class LimiterConfig:
    window_ms: int
    max_requests: int
    message: str
    standard_headers: bool = True
    legacy_headers: bool = False

    def __post_init__(self):
        if self.window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")

    @property
    def window_seconds(self) -> int:
        # `limits` windows have one-second granularity
        return max(1, math.ceil(self.window_ms / 1000))


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds
    limit: int


class WindowLimiter:
    """
    Count requests per client key in fixed windows.

    A window opens on the first request from a key and resets once
    ``window_ms`` has elapsed. Every check counts, including rejected ones,
    so the request that makes the count ``max_requests + 1`` is the first
    one refused. Expired counters are dropped lazily by the storage.
    """

    def __init__(self, config: LimiterConfig, name: str = "default") -> None:
        self.config = config
        self.name = name
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._item = RateLimitItemPerSecond(
            config.max_requests, config.window_seconds, namespace=f"gateway-{name}"
        )

    def check(self, client_key: str) -> RateLimitDecision:
        # Storage increments under a per-key lock, so concurrent hits never undercount.
        allowed = self._strategy.hit(self._item, client_key)
        reset_time, remaining = self._strategy.get_window_stats(self._item, client_key)
        return RateLimitDecision(
            allowed=allowed,
            remaining=max(0, int(remaining)),
            reset_at=float(reset_time),
            limit=self.config.max_requests,
        )

    def reset(self) -> None:
        self._storage.reset()

    # ---- HTTP surface -------------------------------------------------------

    def headers_for(self, decision: RateLimitDecision, now: Optional[float] = None) -> Dict[str, str]:
        now = time.time() if now is None else now
        reset_in = max(0, math.ceil(decision.reset_at - now))
        headers: Dict[str, str] = {}
        if self.config.standard_headers:
            headers["RateLimit-Policy"] = f"{self.config.max_requests};w={self.config.window_seconds}"
            headers["RateLimit-Limit"] = str(decision.limit)
            headers["RateLimit-Remaining"] = str(decision.remaining)
            headers["RateLimit-Reset"] = str(reset_in)
        if self.config.legacy_headers:
            headers["X-RateLimit-Limit"] = str(decision.limit)
            headers["X-RateLimit-Remaining"] = str(decision.remaining)
            headers["X-RateLimit-Reset"] = str(math.ceil(decision.reset_at))
        if not decision.allowed and (self.config.standard_headers or self.config.legacy_headers):
            headers["Retry-After"] = str(reset_in)
        return headers

    def rejection(self, decision: RateLimitDecision) -> Response:
        """429 response carrying the configured message."""
        resp = jsonify(self.config.message)
        resp.status_code = 429
        resp.headers.update(self.headers_for(decision))
        return resp


def build_limiters(settings: dict):
    """Create the (global, ai) limiter pair from app settings."""
    global_cfg = LimiterConfig(
        window_ms=settings["GLOBAL_RATE_LIMIT_WINDOW_MS"],
        max_requests=settings["GLOBAL_RATE_LIMIT_MAX"],
        message=settings["GLOBAL_RATE_LIMIT_MESSAGE"],
    )
    ai_cfg = LimiterConfig(
        window_ms=settings["AI_RATE_LIMIT_WINDOW_MS"],
        max_requests=settings["AI_RATE_LIMIT_MAX"],
        message=settings["AI_RATE_LIMIT_MESSAGE"],
    )
    if ai_cfg.max_requests >= global_cfg.max_requests or ai_cfg.window_ms > global_cfg.window_ms:
        raise ValueError(
            "AI route limit must allow fewer requests than the global limit "
            "over the same or a shorter window"
        )
    return WindowLimiter(global_cfg, name="global"), WindowLimiter(ai_cfg, name="ai")
