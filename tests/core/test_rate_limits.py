"""Rate limiter tests: quota resolution and fixed-window counting.

Invariants:
    - Each named limiter reads its own quota from settings
    - Development multiplies quotas (x20 global, x10 others)
    - The first hit in a window sets the expiry; hits past the quota are refused
"""

from atreo.config import Settings
from atreo.services.rate_limiter import RateLimit, RateLimiter, limit_for


class FakeRedis:
    """Minimal async stand-in for the INCR/EXPIRE/TTL commands."""

    def __init__(self):
        self.counts = {}
        self.ttls = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds

    async def ttl(self, key):
        return self.ttls.get(key, -1)


# --- limit_for ----------------------------------------------------------------

def test_limit_for_production_quotas():
    settings = Settings(environment="production", rate_limit_auth=5, rate_limit_window_seconds=900)
    rate = limit_for("auth", settings)
    assert rate == RateLimit(name="auth", limit=5, window=900)


def test_limit_for_development_multipliers():
    settings = Settings(environment="development", rate_limit_global=100, rate_limit_upload=10)
    assert limit_for("global", settings).limit == 2000
    assert limit_for("upload", settings).limit == 100


# --- RateLimiter --------------------------------------------------------------

async def test_hits_within_quota_are_allowed():
    redis = FakeRedis()
    limiter = RateLimiter(redis)
    rate = RateLimit(name="auth", limit=2, window=60)

    assert await limiter.hit(rate, "1.2.3.4") == (True, 60)
    assert await limiter.hit(rate, "1.2.3.4") == (True, 60)


async def test_hit_past_quota_is_refused():
    limiter = RateLimiter(FakeRedis())
    rate = RateLimit(name="auth", limit=1, window=60)

    await limiter.hit(rate, "1.2.3.4")
    allowed, retry_after = await limiter.hit(rate, "1.2.3.4")

    assert allowed is False
    assert retry_after == 60


async def test_clients_are_counted_separately():
    limiter = RateLimiter(FakeRedis())
    rate = RateLimit(name="auth", limit=1, window=60)

    await limiter.hit(rate, "1.2.3.4")
    allowed, _ = await limiter.hit(rate, "5.6.7.8")

    assert allowed is True
