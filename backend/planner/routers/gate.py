"""Gate router — which screen a path shows for the caller."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from planner.middleware.auth import get_optional_user
from planner.models.user import User
from planner.schemas.settings import GateResponse
from planner.services.gating import resolve_route

router = APIRouter(prefix="/api/gate", tags=["gate"])


@router.get("", response_model=GateResponse)
def gate(
    path: str = Query("/"),
    has_class: bool = Query(False, description="Client holds a validated class id"),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """A signed-in user with a profile always has a class."""
    has_class = has_class or bool(current_user and current_user.profile)
    route = resolve_route(path, has_class=has_class, authenticated=current_user is not None)
    return GateResponse(screen=route.screen, redirect=route.redirect)
