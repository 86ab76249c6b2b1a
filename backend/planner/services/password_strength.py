"""Password strength estimation.

Additive heuristics over length and character classes, with a penalty for
well-known weak patterns. Raw points (0-6) are normalised to a 0-4 score.
"""

import math
import re
from dataclasses import dataclass, field

COMMON_PATTERNS = [
    re.compile(r"^123"),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"abc", re.IGNORECASE),
    re.compile(r"111"),
    re.compile(r"000"),
]

LABELS = ["Very Weak", "Weak", "Fair", "Good", "Strong"]

STRONG_THRESHOLD = 3


@dataclass
class PasswordStrength:
    score: int  # 0-4
    feedback: list[str] = field(default_factory=list)
    is_strong: bool = False


def check_password_strength(password: str) -> PasswordStrength:
    feedback: list[str] = []
    points = 0

    if len(password) >= 6:
        points += 1
    else:
        feedback.append("At least 6 characters")

    if len(password) >= 10:
        points += 1

    if re.search(r"[A-Z]", password):
        points += 1
    else:
        feedback.append("One uppercase letter")

    if re.search(r"[a-z]", password):
        points += 1
    else:
        feedback.append("One lowercase letter")

    if re.search(r"[0-9]", password):
        points += 1
    else:
        feedback.append("One number")

    if re.search(r"[^A-Za-z0-9]", password):
        points += 1
    else:
        feedback.append("One special character (!@#$%^&*)")

    if any(p.search(password) for p in COMMON_PATTERNS):
        points = max(0, points - 2)
        feedback.append("Avoid common patterns")

    score = min(4, max(0, math.floor(points / 1.5)))
    return PasswordStrength(score=score, feedback=feedback, is_strong=score >= STRONG_THRESHOLD)


def strength_label(score: int) -> str:
    return LABELS[max(0, min(4, score))]
