from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from .. import models, schemas
from ..database import get_db
from .users import get_current_user
from ..services import lifecycle

router = APIRouter()


@router.get("/documents", response_model=list[schemas.DocumentForSigning])
def documents_to_sign(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return lifecycle.documents_for_signing(db, current_user.id)


@router.post("/sign", response_model=schemas.Signature, status_code=201)
def sign_document(
    submission: schemas.SignatureCreate,
    request: Request,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return lifecycle.add_signature(
        db,
        submission.document_id,
        current_user.id,
        submission.signature_data,
        submission.position.model_dump(),
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.post("/signatures/{signature_id}/invalidate", response_model=schemas.Signature)
def invalidate_signature(
    signature_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return lifecycle.invalidate_signature(db, signature_id, current_user.id)


@router.get("/{document_id}", response_model=list[schemas.Signature])
def get_signatures(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return lifecycle.list_signatures(db, document_id, current_user.id)
