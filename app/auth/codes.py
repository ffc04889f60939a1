"""
UserDesk - One-time codes for password reset.

Codes are short (4 digits) and live only in process memory with an explicit
expiry. Each email has at most one outstanding code; issuing a new one
replaces the old. Wrong guesses are counted and the code is dropped once
the attempt budget is exhausted.

Flow:
    codes.issue(email)           -> "4821"   (step 1, emailed to the user)
    codes.verify(email, "4821")  -> True     (step 2)
    codes.is_verified(email)     -> True     (step 3, before changing the password)
    codes.consume(email)                     (after the password is changed)
"""
import secrets
import time
from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
from typing import Callable, Dict

from ..config import settings


@dataclass
class _CodeEntry:
    code: str
    expires_at: float
    attempts: int = 0
    verified: bool = False


class OneTimeCodeStore:
    """Thread-safe keyed store of expiring one-time codes."""

    def __init__(
        self,
        ttl_seconds: int,
        max_attempts: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self._clock = clock
        self._data: Dict[str, _CodeEntry] = {}
        self._lock = Lock()

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def _live_entry(self, key: str, now: float):
        entry = self._data.get(key)
        if entry is not None and entry.expires_at <= now:
            del self._data[key]
            return None
        return entry

    def issue(self, email: str) -> str:
        """Create (or replace) the code for email and return it."""
        code = str(1000 + secrets.randbelow(9000))
        with self._lock:
            self._data[self._key(email)] = _CodeEntry(
                code=code,
                expires_at=self._clock() + self.ttl_seconds,
            )
        return code

    def verify(self, email: str, code: str) -> bool:
        """Check a submitted code. A match marks the entry verified."""
        key = self._key(email)
        with self._lock:
            entry = self._live_entry(key, self._clock())
            if entry is None:
                return False
            if secrets.compare_digest(entry.code, str(code or "").strip()):
                entry.verified = True
                return True
            entry.attempts += 1
            if entry.attempts >= self.max_attempts:
                del self._data[key]
            return False

    def is_verified(self, email: str) -> bool:
        with self._lock:
            entry = self._live_entry(self._key(email), self._clock())
            return entry is not None and entry.verified

    def consume(self, email: str) -> None:
        with self._lock:
            self._data.pop(self._key(email), None)

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._data.items() if entry.expires_at <= now]
            for key in expired:
                del self._data[key]
        return len(expired)


@lru_cache(maxsize=1)
def get_reset_code_store() -> OneTimeCodeStore:
    """FastAPI dependency returning the process-wide reset code store."""
    return OneTimeCodeStore(
        ttl_seconds=settings.auth.otp_expire_seconds,
        max_attempts=settings.auth.otp_max_attempts,
    )
