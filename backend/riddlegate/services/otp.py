"""Expiring store for account verification passcodes.

One store lives on each Flask app (``app.extensions['otp_store']``); there is
no module level cache. Entries are keyed by email and expire after the
configured TTL. Expired entries are dropped when touched and swept on every
issue, so no background timer is needed.
"""
import secrets
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from flask import current_app


class OtpStore:
    def __init__(self, ttl_sec: int = 300, length: int = 6, clock: Callable[[], float] = time.monotonic):
        self.ttl_sec = ttl_sec
        self.length = length
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        self.ttl_sec = int(app.config.get('OTP_TTL_SEC', self.ttl_sec))
        self.length = int(app.config.get('OTP_LENGTH', self.length))
        app.extensions['otp_store'] = self

    def generate(self) -> str:
        return ''.join(secrets.choice('0123456789') for _ in range(self.length))

    def issue(self, email: str) -> str:
        """Create a fresh code for ``email``, replacing any earlier one."""
        code = self.generate()
        with self._lock:
            self._purge_expired_locked()
            self._entries[email] = (code, self._clock() + self.ttl_sec)
        return code

    def get(self, email: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(email)
            if entry is None:
                return None
            code, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[email]
                return None
            return code

    def verify(self, email: str, code: Optional[str]) -> bool:
        stored = self.get(email)
        if stored is None or code is None:
            return False
        return secrets.compare_digest(stored, str(code).strip())

    def clear(self, email: str) -> None:
        with self._lock:
            self._entries.pop(email, None)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_expired_locked()

    def _purge_expired_locked(self) -> int:
        now = self._clock()
        expired = [email for email, (_, expires_at) in self._entries.items() if now >= expires_at]
        for email in expired:
            del self._entries[email]
        return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._entries)


def get_otp_store() -> OtpStore:
    return current_app.extensions['otp_store']
