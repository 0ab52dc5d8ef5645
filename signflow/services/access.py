"""
Role resolution for a caller against a single document.

Precedence is fixed and first match wins: owner, then the designated signer,
then the caller's collaborator permission, then no access. Roles are computed
from the document as loaded for the current request and never cached, since
collaborator lists change between requests.
"""
import enum
from typing import Callable

from .. import models
from ..errors import Forbidden


class Role(str, enum.Enum):
    OWNER = "owner"
    SIGNER = "signer"
    VIEW = "view"
    SIGN = "sign"
    EDIT = "edit"
    NONE = "none"


METADATA_ROLES = frozenset({Role.OWNER, Role.EDIT})
SIGNING_ROLES = frozenset({Role.OWNER, Role.EDIT, Role.SIGN, Role.SIGNER})


def get_role(document: models.Document, caller_id: int) -> Role:
    if caller_id is None:
        return Role.NONE
    if document.owner_id == caller_id:
        return Role.OWNER
    if document.signer_user_id is not None and document.signer_user_id == caller_id:
        return Role.SIGNER
    for collaborator in document.collaborators:
        if collaborator.user_id == caller_id:
            return Role(collaborator.permission)
    return Role.NONE


def has_access(document: models.Document, caller_id: int) -> bool:
    return get_role(document, caller_id) != Role.NONE


def can_mutate_metadata(document: models.Document, caller_id: int) -> bool:
    return get_role(document, caller_id) in METADATA_ROLES


def can_change_status(document: models.Document, caller_id: int) -> bool:
    return get_role(document, caller_id) == Role.OWNER


def can_sign(document: models.Document, caller_id: int) -> bool:
    return get_role(document, caller_id) in SIGNING_ROLES


def can_delete(document: models.Document, caller_id: int) -> bool:
    return get_role(document, caller_id) == Role.OWNER


def can_share(document: models.Document, caller_id: int) -> bool:
    return get_role(document, caller_id) == Role.OWNER


def require(
    document: models.Document,
    caller_id: int,
    check: Callable[[models.Document, int], bool],
    message: str = "Access denied",
) -> Role:
    if not check(document, caller_id):
        raise Forbidden(message)
    return get_role(document, caller_id)
