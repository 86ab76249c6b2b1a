"""Simple arithmetic CAPTCHA shown after a failed sign-in."""

import random
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable

OPERATIONS = ("+", "-", "×")


@dataclass(frozen=True)
class CaptchaChallenge:
    question: str
    answer: int


def generate_captcha(rng: random.Random | None = None) -> CaptchaChallenge:
    rng = rng or random.Random()
    num1 = rng.randint(1, 10)
    num2 = rng.randint(1, 10)
    operation = rng.choice(OPERATIONS)

    if operation == "-":
        high, low = max(num1, num2), min(num1, num2)
        return CaptchaChallenge(question=f"{high} - {low}", answer=high - low)
    if operation == "×":
        return CaptchaChallenge(question=f"{num1} × {num2}", answer=num1 * num2)
    return CaptchaChallenge(question=f"{num1} + {num2}", answer=num1 + num2)


def verify_captcha(challenge: CaptchaChallenge, raw_answer) -> tuple[bool, str | None]:
    """Check an answer. Returns ``(ok, error_message)``."""
    try:
        answer = int(str(raw_answer).strip())
    except (TypeError, ValueError):
        return False, "Please enter a number"
    if answer != challenge.answer:
        return False, "Incorrect answer. Try again."
    return True, None


class CaptchaStore:
    """Issued challenges keyed by an opaque token; each token verifies once.

    Challenges and "captcha required" flags both expire after ``ttl_seconds``.
    """

    def __init__(self, ttl_seconds: int = 600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._challenges: dict[str, tuple[CaptchaChallenge, float]] = {}
        self._required: dict[str, float] = {}
        self._lock = threading.Lock()

    # Keys (sign-in emails) that must solve a challenge before the next attempt.

    def require(self, key: str) -> None:
        with self._lock:
            self._purge()
            self._required[key] = self._clock()

    def is_required(self, key: str) -> bool:
        with self._lock:
            flagged = self._required.get(key)
            return flagged is not None and not self._expired(flagged)

    def clear(self, key: str) -> None:
        with self._lock:
            self._required.pop(key, None)

    def issue(self) -> tuple[str, CaptchaChallenge]:
        token = secrets.token_urlsafe(16)
        challenge = generate_captcha()
        with self._lock:
            self._purge()
            self._challenges[token] = (challenge, self._clock())
        return token, challenge

    def verify(self, token: str | None, raw_answer) -> tuple[bool, str | None]:
        with self._lock:
            entry = self._challenges.pop(token or "", None)
        if entry is None or self._expired(entry[1]):
            return False, "Please complete the CAPTCHA verification"
        return verify_captcha(entry[0], raw_answer)

    def reset(self) -> None:
        with self._lock:
            self._challenges.clear()
            self._required.clear()

    def _expired(self, issued: float) -> bool:
        return issued < self._clock() - self.ttl_seconds

    def _purge(self) -> None:
        for token in [t for t, (_, issued) in self._challenges.items() if self._expired(issued)]:
            del self._challenges[token]
        for key in [k for k, flagged in self._required.items() if self._expired(flagged)]:
            del self._required[key]


captcha_store = CaptchaStore()
