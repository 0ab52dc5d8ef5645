"""
Document lifecycle: creation, metadata and status changes, signing, deletion,
and the per-caller listings built on top of them.

Owner status changes only move forward along draft -> pending_signature ->
signed -> completed. Adding a signature always sets ``signed``, completed
included. ``pending`` is stored for older records and ranks with
``pending_signature``; signer-facing listings report every awaiting state as
``pending`` through :func:`present_status`.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .. import models
from ..database import commit_with_retry
from ..errors import NotFound, SignerNotRegistered, ValidationFailed
from ..models import DocumentStatus
from . import access, audit, directory, pdf_service, storage
from .access import Role

logger = logging.getLogger(__name__)

AWAITING_SIGNATURE = frozenset({"pending", "pending_signature", "review", "uploaded"})

STATUS_RANK = {
    DocumentStatus.DRAFT.value: 0,
    DocumentStatus.PENDING.value: 1,
    DocumentStatus.PENDING_SIGNATURE.value: 1,
    DocumentStatus.SIGNED.value: 2,
    DocumentStatus.COMPLETED.value: 3,
}

EDITABLE_FIELDS = ("title", "description", "status")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _status_value(status) -> str:
    return status.value if isinstance(status, DocumentStatus) else status


def present_status(status) -> str:
    value = _status_value(status)
    return "pending" if value in AWAITING_SIGNATURE else value


def get_document(db: Session, document_id: int) -> models.Document:
    document = db.query(models.Document).filter(models.Document.id == document_id).first()
    if not document:
        raise NotFound("Document not found")
    return document


def create_document(
    db: Session,
    owner_id: int,
    file_meta: dict,
    title: Optional[str] = None,
    description: Optional[str] = None,
    signer_name: Optional[str] = None,
    signer_email: Optional[str] = None,
) -> models.Document:
    """
    Record an uploaded file as a new document owned by ``owner_id``.

    ``file_meta`` carries the stored file's ``filename``, ``original_name``,
    ``file_path``, ``file_size`` and ``mime_type``. When ``signer_email`` is
    given it must resolve to a registered account; the document then starts
    in ``pending_signature``, otherwise in ``draft``.
    """
    if not file_meta or not file_meta.get("file_path") or not file_meta.get("original_name"):
        raise ValidationFailed("No file uploaded")

    signer_name = (signer_name or "").strip() or None
    signer = None
    email = None
    if signer_email and signer_email.strip():
        email = directory.validate_email(signer_email, "signer email")
        signer = directory.resolve(db, email)
        if signer is None:
            raise SignerNotRegistered()
    elif signer_name:
        raise ValidationFailed("Signer email is required when a signer name is given")

    document = models.Document(
        title=(title or "").strip() or file_meta["original_name"],
        description=(description or "").strip(),
        filename=file_meta.get("filename") or file_meta["original_name"],
        original_name=file_meta["original_name"],
        file_path=file_meta["file_path"],
        file_size=file_meta.get("file_size") or 0,
        mime_type=file_meta.get("mime_type") or "application/pdf",
        owner_id=owner_id,
        status=DocumentStatus.DRAFT.value,
    )
    if signer is not None:
        document.signer_name = signer_name or signer.name
        document.signer_email = email
        document.signer_user_id = signer.id
        document.status = DocumentStatus.PENDING_SIGNATURE.value
        document.sent_at = _now()

    db.add(document)
    audit.record(db, document, "UPLOADED", user_id=owner_id)
    db.commit()
    db.refresh(document)

    if signer is not None:
        logger.info("Document %s uploaded by %s and assigned to %s", document.id, owner_id, email)
    else:
        logger.info("Document %s uploaded by %s as draft", document.id, owner_id)
    return document


def _transition(document: models.Document, new_status) -> None:
    try:
        target = DocumentStatus(_status_value(new_status))
    except ValueError:
        raise ValidationFailed(f"Unknown status {new_status!r}")

    current = document.status
    if STATUS_RANK[target.value] < STATUS_RANK.get(current, 0):
        raise ValidationFailed(f"Cannot move document from {current} back to {target.value}")

    document.status = target.value
    if target in (DocumentStatus.PENDING, DocumentStatus.PENDING_SIGNATURE) and document.sent_at is None:
        document.sent_at = _now()
    if target == DocumentStatus.SIGNED and document.signed_at is None:
        document.signed_at = _now()


def update_document(db: Session, document_id: int, caller_id: int, fields: dict) -> models.Document:
    changes = {k: v for k, v in (fields or {}).items() if k in EDITABLE_FIELDS and v is not None}

    if "title" in changes and not str(changes["title"]).strip():
        raise ValidationFailed("Title cannot be empty")

    def apply():
        document = get_document(db, document_id)
        access.require(document, caller_id, access.can_mutate_metadata,
                       "Insufficient permissions to update document")

        if "status" in changes:
            access.require(document, caller_id, access.can_change_status,
                           "Only the owner can change document status")
            _transition(document, changes["status"])
        if "title" in changes:
            document.title = changes["title"].strip()
        if "description" in changes:
            document.description = changes["description"].strip()

        audit.record(db, document, "UPDATED", user_id=caller_id)
        return document

    document = commit_with_retry(db, apply)
    logger.info("Document %s updated by %s (%s)", document_id, caller_id, ", ".join(sorted(changes)) or "no changes")
    return document


def add_signature(
    db: Session,
    document_id: int,
    caller_id: int,
    signature_data: str,
    position: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> models.Signature:
    if not signature_data or not signature_data.strip():
        raise ValidationFailed("Signature data is required")
    position = position or {}

    def apply():
        document = get_document(db, document_id)
        access.require(document, caller_id, access.can_sign, "No signing permission")

        signature = models.Signature(
            signer_id=caller_id,
            signature_data=signature_data,
            x=position.get("x"),
            y=position.get("y"),
            page=position.get("page"),
            width=position.get("width"),
            height=position.get("height"),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        document.signatures.append(signature)

        # a new signature always puts the document in signed, completed included
        document.status = DocumentStatus.SIGNED.value
        if document.signed_at is None:
            document.signed_at = _now()

        audit.record(db, document, "SIGNED", user_id=caller_id,
                     ip_address=ip_address, user_agent=user_agent)
        return signature

    signature = commit_with_retry(db, apply)
    logger.info("Document %s signed by %s (signature %s)", document_id, caller_id, signature.id)
    return signature


def list_signatures(db: Session, document_id: int, caller_id: int) -> List[models.Signature]:
    document = get_document(db, document_id)
    access.require(document, caller_id, access.has_access)
    return (
        db.query(models.Signature)
        .filter(models.Signature.document_id == document_id)
        .order_by(models.Signature.created_at.desc(), models.Signature.id.desc())
        .all()
    )


def invalidate_signature(db: Session, signature_id: int, caller_id: int) -> models.Signature:
    def apply():
        signature = db.query(models.Signature).filter(models.Signature.id == signature_id).first()
        if not signature:
            raise NotFound("Signature not found")
        access.require(signature.document, caller_id, access.can_change_status,
                       "Only the owner can invalidate signatures")
        signature.is_valid = False
        audit.record(db, signature.document, "SIGNATURE_INVALIDATED", user_id=caller_id)
        return signature

    signature = commit_with_retry(db, apply)
    logger.info("Signature %s invalidated by %s", signature_id, caller_id)
    return signature


def delete_document(db: Session, document_id: int, caller_id: int) -> None:
    def apply():
        document = get_document(db, document_id)
        access.require(document, caller_id, access.can_delete, "Access denied")
        file_path = document.file_path
        db.delete(document)
        return file_path

    file_path = commit_with_retry(db, apply)

    # The record is gone; a missing backing file does not fail the delete
    storage.delete_file(file_path)
    logger.info("Document %s deleted by %s", document_id, caller_id)


def document_with_role(db: Session, document_id: int, caller_id: int) -> Tuple[models.Document, Role]:
    document = get_document(db, document_id)
    role = access.require(document, caller_id, access.has_access)
    return document, role


def _collaborating_on(user_id: int, permissions=None):
    query = select(models.Collaborator.document_id).where(models.Collaborator.user_id == user_id)
    if permissions is not None:
        query = query.where(models.Collaborator.permission.in_(permissions))
    return query


def list_documents(db: Session, user_id: int) -> List[models.Document]:
    return (
        db.query(models.Document)
        .filter(or_(
            models.Document.owner_id == user_id,
            models.Document.signer_user_id == user_id,
            models.Document.id.in_(_collaborating_on(user_id)),
        ))
        .order_by(models.Document.created_at.desc(), models.Document.id.desc())
        .all()
    )


def list_shared_documents(db: Session, user_id: int) -> List[Tuple[models.Document, Role]]:
    documents = (
        db.query(models.Document)
        .filter(
            or_(
                models.Document.signer_user_id == user_id,
                models.Document.id.in_(_collaborating_on(user_id)),
            ),
            models.Document.owner_id != user_id,
        )
        .order_by(models.Document.created_at.desc(), models.Document.id.desc())
        .all()
    )
    return [(d, access.get_role(d, user_id)) for d in documents]


def documents_for_signing(db: Session, user_id: int) -> List[dict]:
    """
    Documents waiting on ``user_id``'s signature.

    Covers documents still awaiting a signature where the user is the
    designated signer or a sign/edit collaborator, minus the ones they own
    and the ones they already signed. Drafts are never listed.
    """
    already_signed = select(models.Signature.document_id).where(models.Signature.signer_id == user_id)
    documents = (
        db.query(models.Document)
        .filter(
            or_(
                models.Document.signer_user_id == user_id,
                models.Document.id.in_(_collaborating_on(
                    user_id, [models.Permission.SIGN.value, models.Permission.EDIT.value])),
            ),
            models.Document.status.in_(AWAITING_SIGNATURE),
            models.Document.owner_id != user_id,
            ~models.Document.id.in_(already_signed),
        )
        .order_by(
            func.coalesce(models.Document.sent_at, models.Document.created_at).desc(),
            models.Document.id.desc(),
        )
        .all()
    )
    return [
        {
            "id": d.id,
            "title": d.title,
            "filename": d.filename,
            "sender_name": d.owner.name,
            "sender_email": d.owner.email,
            "status": present_status(d.status),
            "created_at": d.created_at,
            "sent_at": d.sent_at,
        }
        for d in documents
    ]


def read_document_file(db: Session, document_id: int, caller_id: int) -> Tuple[models.Document, bytes]:
    document, _ = document_with_role(db, document_id, caller_id)
    try:
        return document, storage.read_file(document.file_path)
    except FileNotFoundError:
        raise NotFound("File not found on server")


def flatten_document(db: Session, document_id: int, caller_id: int) -> Tuple[models.Document, bytes]:
    """Render the stored PDF with every valid signature burned in."""
    document, original = read_document_file(db, document_id, caller_id)
    overlays = [
        {
            "page": s.page,
            "x": s.x,
            "y": s.y,
            "width": s.width,
            "height": s.height,
            "image_data": s.signature_data,
            "text": s.signer.name if s.signer else "",
            "signed_at": s.created_at.strftime("%Y-%m-%d %H:%M") if s.created_at else "",
        }
        for s in document.signatures
        if s.is_valid
    ]
    return document, pdf_service.flatten_signatures(original, overlays)
