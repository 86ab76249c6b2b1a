"""Attachments router — uploads, signed URLs and signed downloads."""

import mimetypes

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from planner.config import settings
from planner.database import get_db
from planner.errors import StorageError
from planner.middleware.auth import require_profile
from planner.models.user import Profile
from planner.schemas.homework import AttachmentRecord
from planner.services import attachment_service
from planner.services.storage import storage
from planner.utils import row_to_dict

router = APIRouter(tags=["attachments"])


class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int


@router.post("/api/homework/{homework_id}/attachments", response_model=AttachmentRecord, status_code=201)
async def upload_attachment(
    homework_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_profile),
):
    """Attach an image or PDF to a homework item."""
    content = await file.read()
    try:
        attachment = attachment_service.upload_attachment(
            db, homework_id, profile.class_id, profile.id,
            file.filename or "file", file.content_type, content,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AttachmentRecord.model_validate(row_to_dict(attachment))


@router.get("/api/attachments/{attachment_id}/url", response_model=SignedUrlResponse)
def attachment_url(attachment_id: str, db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    url = attachment_service.get_attachment_url(db, attachment_id, profile.class_id)
    return SignedUrlResponse(url=url, expires_in=settings.SIGNED_URL_EXPIRE_SECONDS)


@router.delete("/api/attachments/{attachment_id}", status_code=204)
def delete_attachment(attachment_id: str, db: Session = Depends(get_db), profile: Profile = Depends(require_profile)):
    attachment_service.delete_attachment(db, attachment_id, profile.class_id)


@router.get("/api/storage/{bucket}/{path:path}")
def download(bucket: str, path: str, token: str = Query(...)):
    """Serve an object to holders of a valid signed URL."""
    if bucket != storage.bucket or not storage.verify_signed_token(path, token):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        data = storage.download(path)
    except StorageError as e:
        raise HTTPException(status_code=404, detail=e.message)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
