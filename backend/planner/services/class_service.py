"""Class service — creation and the code lookup function."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from planner.errors import Conflict, NotFound, RpcError
from planner.models.class_ import Class
from planner.services.class_code import CLASS_CODE_RE, normalize_code

logger = logging.getLogger(__name__)


def get_class_by_code(db: Session, p_code: str) -> list[dict]:
    """Look up classes by join code.

    Exposes only the fields needed to join a class, never the full table.
    Database failures surface as ``RpcError`` so callers can tell them
    apart from "no such code".
    """
    try:
        rows = db.query(Class).filter(Class.code == normalize_code(p_code)).all()
    except SQLAlchemyError as e:
        logger.error("get_class_by_code failed: %s", e)
        raise RpcError(str(e.__class__.__name__), code="XX000", status=500)
    return [{"id": c.id, "class_id": c.id, "code": c.code, "name": c.name} for c in rows]


def create_class(db: Session, code: str, name: str | None = None) -> Class:
    code = normalize_code(code)
    if not CLASS_CODE_RE.match(code):
        raise ValueError("Invalid class code format. Example: 1HAT2")
    if db.query(Class).filter(Class.code == code).first():
        raise Conflict("Class code already exists")

    cls = Class(code=code, name=name)
    db.add(cls)
    db.commit()
    db.refresh(cls)
    logger.info("Created class %s (%s)", cls.code, cls.id)
    return cls


def get_class(db: Session, class_id: str) -> Class:
    cls = db.query(Class).filter(Class.id == class_id).first()
    if not cls:
        raise NotFound("Class not found")
    return cls
