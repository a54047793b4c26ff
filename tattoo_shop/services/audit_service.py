"""
Audit Log Service
Writes one audit entry per local state change
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    action: str,
    resource: str,
    resource_id: Optional[str] = None,
    user_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    commit: bool = True,
) -> Optional[AuditLog]:
    """
    Add an audit entry. With commit=False the entry joins the caller's
    transaction; otherwise it is committed on its own.

    A failure to write a standalone entry is logged and does not undo the
    change it describes, which is already committed.
    """
    entry = AuditLog(
        action=action,
        resource=resource,
        resource_id=resource_id,
        user_id=user_id,
        details=details or {},
    )
    if not commit:
        db.add(entry)
        return entry

    try:
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to write audit log {action} for {resource} {resource_id}: {e}")
        return None


def get_audit_trail(db: Session, resource: str, resource_id: str) -> list[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.resource == resource, AuditLog.resource_id == resource_id)
        .order_by(AuditLog.id.asc())
        .all()
    )
