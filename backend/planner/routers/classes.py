"""Classes router — code validation, creation and lookup."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from planner.config import settings
from planner.database import get_db
from planner.middleware.auth import get_current_user
from planner.models.user import User
from planner.schemas.class_ import ClassCodeRequest, ClassCodeResponse, ClassCreate, ClassResponse
from planner.services import class_service
from planner.services.class_code import validate_class_code

router = APIRouter(prefix="/api/classes", tags=["classes"])


def _class_to_response(cls) -> ClassResponse:
    return ClassResponse(
        id=cls.id,
        code=cls.code,
        name=cls.name,
        created_at=cls.created_at.isoformat() if cls.created_at else "",
    )


@router.post("/validate", response_model=ClassCodeResponse)
def validate(req: ClassCodeRequest, db: Session = Depends(get_db)):
    """Check a class code and return the class id it resolves to."""
    result = validate_class_code(req.code, lambda code: class_service.get_class_by_code(db, code))
    return ClassCodeResponse(valid=result.valid, class_id=result.class_id, error=result.error)


@router.post("", response_model=ClassResponse, status_code=201)
def create_class(
    req: ClassCreate,
    db: Session = Depends(get_db),
    x_admin_key: Optional[str] = Header(None),
):
    """Create a class (requires the admin key)."""
    if not settings.ADMIN_API_KEY or x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Admin key required")
    try:
        cls = class_service.create_class(db, req.code, req.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _class_to_response(cls)


@router.get("/{class_id}", response_model=ClassResponse)
def get_class(
    class_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _class_to_response(class_service.get_class(db, class_id))
