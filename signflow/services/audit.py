from typing import Optional

from sqlalchemy.orm import Session

from .. import models


def record(
    db: Session,
    document: models.Document,
    action: str,
    user_id: Optional[int] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> models.AuditLog:
    """Stage an audit row for ``document``; the caller's commit persists it."""
    entry = models.AuditLog(
        document=document,
        user_id=user_id,
        action=action,
        ip_address=ip_address or "System",
        user_agent=user_agent or "System",
    )
    db.add(entry)
    return entry
