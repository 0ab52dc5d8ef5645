import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models
from ..database import commit_with_retry
from ..errors import AlreadyCollaborator, SelfCollaboration, UserNotFound, ValidationFailed
from . import access, audit, directory
from .lifecycle import get_document

logger = logging.getLogger(__name__)

PERMISSIONS = tuple(p.value for p in models.Permission)


@dataclass
class ShareResult:
    added: List[dict] = field(default_factory=list)
    existing: List[dict] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)


def _check_permission(permission: Optional[str]) -> str:
    permission = permission or models.Permission.VIEW.value
    if permission not in PERMISSIONS:
        raise ValidationFailed(f"Permission must be one of: {', '.join(PERMISSIONS)}")
    return permission


def _find_collaborator(document: models.Document, user_id: int) -> Optional[models.Collaborator]:
    for collaborator in document.collaborators:
        if collaborator.user_id == user_id:
            return collaborator
    return None


def add_collaborator(
    db: Session,
    document_id: int,
    caller_id: int,
    email: str,
    permission: Optional[str] = None,
) -> models.Document:
    permission = _check_permission(permission)

    def apply():
        document = get_document(db, document_id)
        access.require(document, caller_id, access.can_share, "Only owner can add collaborators")

        user = directory.resolve(db, email)
        if not user:
            raise UserNotFound()
        if user.id == document.owner_id:
            raise SelfCollaboration()
        if _find_collaborator(document, user.id):
            raise AlreadyCollaborator()

        document.collaborators.append(models.Collaborator(user_id=user.id, permission=permission))
        audit.record(db, document, "COLLABORATOR_ADDED", user_id=caller_id)
        return document, user

    document, user = commit_with_retry(db, apply)
    logger.info("Collaborator %s added to document %s with %s permission", user.email, document_id, permission)
    return document


def share_document(
    db: Session,
    document_id: int,
    caller_id: int,
    emails: List[str],
    permission: Optional[str] = None,
    message: Optional[str] = None,
) -> ShareResult:
    """
    Add several collaborators at once.

    Emails are handled in order and each one lands in exactly one bucket:
    ``added``, ``existing`` (already a collaborator) or ``not_found`` (no
    account). The owner's own address is skipped. Nothing is written unless
    at least one collaborator was added. Bucket entries carry each email as
    the caller wrote it.
    """
    if not emails:
        raise ValidationFailed("Email addresses are required")
    permission = _check_permission(permission)

    def apply():
        document = get_document(db, document_id)
        access.require(document, caller_id, access.can_share, "Only owner can share documents")

        result = ShareResult()
        seen = set()
        for raw in emails:
            email = directory.normalize_email(raw)
            if email in seen:
                continue
            seen.add(email)

            user = directory.resolve(db, email)
            if not user:
                result.not_found.append(raw)
                continue
            if user.id == document.owner_id:
                continue
            if _find_collaborator(document, user.id):
                result.existing.append({"email": raw, "name": user.name})
                continue

            document.collaborators.append(models.Collaborator(user_id=user.id, permission=permission))
            result.added.append({"email": raw, "name": user.name})

        if result.added:
            audit.record(db, document, "SHARED", user_id=caller_id)
        return result

    result = commit_with_retry(db, apply)
    logger.info(
        "Document %s shared by %s: %s added, %s existing, %s not found%s",
        document_id, caller_id, len(result.added), len(result.existing), len(result.not_found),
        " (with message)" if message else "",
    )
    return result
