import re
import threading
import time

from jobtracker.config import settings

AUTH_PATHS = {"/auth/login", "/auth/register", "/auth/forgot-password"}
AI_PATHS = {"/resumes/generate", "/resumes/cover-letter", "/resumes/job-fit", "/resumes/interview-questions"}
PDF_PATH = re.compile(r"^/resumes/[^/]+/pdf$")


class InMemoryRateLimiter:
    """
    Fixed-window rate limiter keyed by client and route.
    State lives in this process only; each worker counts separately.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state: dict[str, tuple[int, float]] = {}

    def allow(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """
        Returns (allowed, retry_after_seconds).
        """
        now = time.time()
        with self._lock:
            count, window_start = self._state.get(key, (0, now))
            if now - window_start >= window_seconds:
                count = 0
                window_start = now
            if count >= limit:
                retry_after = max(1, int(window_seconds - (now - window_start)))
                return False, retry_after
            self._state[key] = (count + 1, window_start)
            return True, 0

    def reset(self) -> None:
        with self._lock:
            self._state.clear()


def limit_for(method: str, path: str) -> tuple[str, int] | None:
    """(bucket name, per-minute limit) for guarded routes, None for everything else."""
    if method == "OPTIONS":
        return None
    if path in AUTH_PATHS:
        return path, settings.rate_limit_auth_per_min
    if path in AI_PATHS:
        return "ai", settings.rate_limit_ai_per_min
    if method == "POST" and PDF_PATH.match(path):
        return "pdf", settings.rate_limit_pdf_render_per_min
    return None


rate_limiter = InMemoryRateLimiter()
