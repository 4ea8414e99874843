import time

import pytest

from jobtracker.core import rate_limiter as rl
from jobtracker.core.rate_limiter import InMemoryRateLimiter, limit_for


def test_rate_limiter_allows_then_blocks_then_recovers():
    limiter = InMemoryRateLimiter()
    key = "ip:/auth/login"

    ok1, retry1 = limiter.allow(key, limit=2, window_seconds=1)
    ok2, retry2 = limiter.allow(key, limit=2, window_seconds=1)
    ok3, retry3 = limiter.allow(key, limit=2, window_seconds=1)

    assert ok1 is True and retry1 == 0
    assert ok2 is True and retry2 == 0
    assert ok3 is False
    assert retry3 >= 1

    time.sleep(1.05)
    ok4, retry4 = limiter.allow(key, limit=2, window_seconds=1)
    assert ok4 is True
    assert retry4 == 0


def test_reset_clears_counts():
    limiter = InMemoryRateLimiter()
    limiter.allow("k", limit=1, window_seconds=60)
    assert limiter.allow("k", limit=1, window_seconds=60)[0] is False
    limiter.reset()
    assert limiter.allow("k", limit=1, window_seconds=60)[0] is True


@pytest.mark.parametrize(
    "method,path,bucket,setting",
    [
        ("POST", "/auth/login", "/auth/login", "rate_limit_auth_per_min"),
        ("POST", "/auth/forgot-password", "/auth/forgot-password", "rate_limit_auth_per_min"),
        ("POST", "/resumes/generate", "ai", "rate_limit_ai_per_min"),
        ("POST", "/resumes/job-fit", "ai", "rate_limit_ai_per_min"),
        ("POST", "/resumes/abc-123/pdf", "pdf", "rate_limit_pdf_render_per_min"),
    ],
)
def test_limit_for_guarded_routes(method, path, bucket, setting):
    assert limit_for(method, path) == (bucket, getattr(rl.settings, setting))


@pytest.mark.parametrize(
    "method,path",
    [("GET", "/jobs"), ("OPTIONS", "/auth/login"), ("GET", "/resumes/abc-123"), ("POST", "/resumes/a/b/pdf")],
)
def test_limit_for_unguarded_routes(method, path):
    assert limit_for(method, path) is None
