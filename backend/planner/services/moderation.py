"""Basic content moderation service."""

import re

BLOCKED_WORDS = [
    "badword1", "badword2", "badword3",
]

MAX_CONTENT_LENGTH = 10000


def filter_content(text: str) -> tuple[bool, str]:
    """Mask blocked whole words with ``***``.

    Returns:
        ``(clean, filtered)`` where ``clean`` is False if anything was masked.
    """
    filtered = text or ""
    clean = True

    for word in BLOCKED_WORDS:
        pattern = re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
        if pattern.search(filtered):
            clean = False
            filtered = pattern.sub("***", filtered)

    return clean, filtered


def check_content(text: str) -> dict:
    """Check text content for policy violations.

    Returns:
        Dict with 'safe' bool and optional 'reason' string.
    """
    clean, _ = filter_content(text)
    if not clean:
        return {"safe": False, "reason": "Content contains inappropriate language."}

    if len(text or "") > MAX_CONTENT_LENGTH:
        return {
            "safe": False,
            "reason": "Content exceeds maximum length of 10,000 characters.",
        }

    return {"safe": True, "reason": None}


def moderate_post(title: str, body: str | None) -> dict:
    """Moderate a title/body pair (homework or announcement)."""
    title_check = check_content(title)
    if not title_check["safe"]:
        return title_check

    if body:
        body_check = check_content(body)
        if not body_check["safe"]:
            return body_check

    return {"safe": True, "reason": None}
