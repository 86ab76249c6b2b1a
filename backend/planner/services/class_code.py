"""Class-code validation and resolution to a class id."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from planner.errors import RpcError

logger = logging.getLogger(__name__)

# Grade (1-2 digits) + class (2-3 letters) + group (1-2 digits), e.g. 3HT1
CLASS_CODE_RE = re.compile(r"^[0-9]{1,2}[A-Z]{2,3}[0-9]{1,2}$")

NOT_FOUND = "Class code not found. Please check your code."


@dataclass(frozen=True)
class ClassCodeResult:
    valid: bool
    class_id: str | None = None
    error: str | None = None


def normalize_code(raw: str | None) -> str:
    return (raw or "").strip().upper()


def _row_class_id(row: Any) -> str | None:
    if isinstance(row, dict):
        return row.get("class_id") or row.get("id")
    return None


def validate_class_code(raw: str | None, lookup: Callable[[str], Any]) -> ClassCodeResult:
    """Validate ``raw`` against the code pattern and resolve it with ``lookup``.

    ``lookup`` is the ``get_class_by_code`` function: it receives the
    normalised code and returns a list of rows (or a single row). It is only
    called for codes that match the pattern.
    """
    code = normalize_code(raw)

    if not code:
        return ClassCodeResult(valid=False, error="Please enter your class code.")

    if not CLASS_CODE_RE.match(code):
        return ClassCodeResult(valid=False, error="Invalid class code format. Example: 1HAT2")

    try:
        data = lookup(code)
    except RpcError as e:
        if e.code == "PGRST116" or e.status == 406:
            return ClassCodeResult(valid=False, error=NOT_FOUND)
        return ClassCodeResult(valid=False, error=f"Server error: {e.message}")
    except Exception as e:
        logger.exception("Class code lookup failed for %s", code)
        return ClassCodeResult(valid=False, error=f"Unexpected error: {e}")

    if isinstance(data, list):
        if not data:
            return ClassCodeResult(valid=False, error=NOT_FOUND)
        class_id = _row_class_id(data[0])
    else:
        class_id = _row_class_id(data)

    if class_id:
        return ClassCodeResult(valid=True, class_id=class_id)
    return ClassCodeResult(valid=False, error=NOT_FOUND)
