import pytest

from signflow import models
from signflow.errors import Forbidden
from signflow.services import access
from signflow.services.access import Role


def _doc(owner_id=1, signer_user_id=None, collaborators=()):
    return models.Document(
        owner_id=owner_id,
        signer_user_id=signer_user_id,
        collaborators=[models.Collaborator(user_id=u, permission=p) for u, p in collaborators],
    )


def test_owner_signer_collaborator_and_stranger_roles():
    doc = _doc(owner_id=1, signer_user_id=2, collaborators=[(3, "view"), (4, "sign"), (5, "edit")])

    assert access.get_role(doc, 1) == Role.OWNER
    assert access.get_role(doc, 2) == Role.SIGNER
    assert access.get_role(doc, 3) == Role.VIEW
    assert access.get_role(doc, 4) == Role.SIGN
    assert access.get_role(doc, 5) == Role.EDIT
    assert access.get_role(doc, 99) == Role.NONE
    assert access.get_role(doc, None) == Role.NONE


def test_owner_wins_over_signer_assignment():
    doc = _doc(owner_id=1, signer_user_id=1)
    assert access.get_role(doc, 1) == Role.OWNER


def test_signer_wins_over_collaborator_permission():
    doc = _doc(owner_id=1, signer_user_id=2, collaborators=[(2, "view")])
    assert access.get_role(doc, 2) == Role.SIGNER
    assert access.can_sign(doc, 2)


def test_no_signer_assigned_never_yields_signer_role():
    doc = _doc(owner_id=1, signer_user_id=None)
    assert access.get_role(doc, 2) == Role.NONE


@pytest.mark.parametrize(
    "caller, has_access, metadata, status, sign",
    [
        (1, True, True, True, True),      # owner
        (2, True, False, False, True),    # signer
        (3, True, False, False, False),   # view
        (4, True, False, False, True),    # sign
        (5, True, True, False, True),     # edit
        (6, False, False, False, False),  # stranger
    ],
)
def test_permission_predicates(caller, has_access, metadata, status, sign):
    doc = _doc(owner_id=1, signer_user_id=2, collaborators=[(3, "view"), (4, "sign"), (5, "edit")])

    assert access.has_access(doc, caller) is has_access
    assert access.can_mutate_metadata(doc, caller) is metadata
    assert access.can_change_status(doc, caller) is status
    assert access.can_sign(doc, caller) is sign
    assert access.can_delete(doc, caller) is (caller == 1)
    assert access.can_share(doc, caller) is (caller == 1)


def test_role_follows_collaborator_list_changes():
    doc = _doc(owner_id=1)
    assert access.get_role(doc, 7) == Role.NONE

    doc.collaborators.append(models.Collaborator(user_id=7, permission="sign"))
    assert access.get_role(doc, 7) == Role.SIGN

    doc.collaborators[0].permission = "edit"
    assert access.get_role(doc, 7) == Role.EDIT


def test_require_raises_forbidden_with_message():
    doc = _doc(owner_id=1, collaborators=[(3, "view")])

    assert access.require(doc, 1, access.can_delete) == Role.OWNER
    with pytest.raises(Forbidden) as exc:
        access.require(doc, 3, access.can_delete, "Only the owner can delete")
    assert exc.value.kind == "forbidden"
    assert exc.value.status_code == 403
    assert exc.value.message == "Only the owner can delete"
