import io
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session
from .. import models, schemas
from ..config import settings
from ..database import get_db
from ..errors import SignFlowError, ValidationFailed
from .users import get_current_user
from ..services import lifecycle, sharing, storage

router = APIRouter()


def _with_role(document: models.Document, role) -> schemas.DocumentWithRole:
    detail = schemas.DocumentWithRole.model_validate(document)
    detail.user_role = role.value
    return detail


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/upload", response_model=schemas.Document, status_code=201)
def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    signer_name: Optional[str] = Form(None),
    signer_email: Optional[str] = Form(None),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not file.filename:
        raise ValidationFailed("No file uploaded")
    if file.content_type != "application/pdf" and not file.filename.lower().endswith(".pdf"):
        raise ValidationFailed("Only PDF files are accepted")

    # never buffer more than one byte past the limit
    content = file.file.read(settings.max_upload_bytes + 1)
    if not content:
        raise ValidationFailed("Uploaded file is empty")
    if len(content) > settings.max_upload_bytes:
        raise ValidationFailed("Uploaded file is too large")

    # Store the binary first; the record points at it
    unique_filename = storage.unique_filename(file.filename)
    file_path = storage.save_file(io.BytesIO(content), unique_filename)
    file_meta = {
        "filename": unique_filename,
        "original_name": file.filename,
        "file_path": file_path,
        "file_size": len(content),
        "mime_type": file.content_type or "application/pdf",
    }

    try:
        return lifecycle.create_document(
            db, current_user.id, file_meta,
            title=title, description=description,
            signer_name=signer_name, signer_email=signer_email,
        )
    except SignFlowError:
        storage.delete_file(file_path)
        raise


@router.get("/", response_model=list[schemas.Document])
def list_documents(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return lifecycle.list_documents(db, current_user.id)


@router.get("/for-signing", response_model=list[schemas.DocumentForSigning])
def documents_for_signing(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return lifecycle.documents_for_signing(db, current_user.id)


@router.get("/shared", response_model=list[schemas.DocumentWithRole])
def shared_documents(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return [_with_role(d, role) for d, role in lifecycle.list_shared_documents(db, current_user.id)]


@router.get("/{document_id}/download")
def download_document(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    document, content = lifecycle.read_document_file(db, document_id, current_user.id)
    return _pdf_response(content, document.original_name)


@router.get("/{document_id}/signed")
def download_signed_document(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    document, content = lifecycle.flatten_document(db, document_id, current_user.id)
    return _pdf_response(content, f"signed_{document.original_name}")


@router.get("/{document_id}", response_model=schemas.DocumentWithRole)
def get_document(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    document, role = lifecycle.document_with_role(db, document_id, current_user.id)
    return _with_role(document, role)


@router.put("/{document_id}", response_model=schemas.Document)
def update_document(
    document_id: int,
    fields: schemas.DocumentUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return lifecycle.update_document(db, document_id, current_user.id, fields.model_dump(exclude_unset=True))


@router.delete("/{document_id}")
def delete_document(
    document_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    lifecycle.delete_document(db, document_id, current_user.id)
    return {"message": "Document deleted successfully"}


@router.post("/{document_id}/collaborators", response_model=schemas.Document)
def add_collaborator(
    document_id: int,
    collaborator: schemas.CollaboratorCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return sharing.add_collaborator(
        db, document_id, current_user.id, collaborator.email, collaborator.permission.value
    )


@router.post("/{document_id}/share", response_model=schemas.ShareResponse)
def share_document(
    document_id: int,
    share: schemas.ShareRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    results = sharing.share_document(
        db, document_id, current_user.id, share.emails, share.permission.value, share.message
    )
    return {
        "document": schemas.Document.model_validate(lifecycle.get_document(db, document_id)),
        "results": {
            "added": results.added,
            "existing": results.existing,
            "not_found": results.not_found,
        },
        "message": f"Document shared with {len(results.added)} user(s)",
    }
