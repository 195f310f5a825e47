"""
Admin audit trail.
"""

from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_client_ip
from infrastructure.database.models.admin import AdminAuditLog, AuditAction, AuditTargetType
from infrastructure.database.models.user import User


async def create_audit_log(
    db: AsyncSession,
    admin_user: User,
    action: AuditAction,
    target_type: AuditTargetType,
    target_id: Optional[str],
    description: str,
    metadata: Optional[dict] = None,
    request: Optional[Request] = None,
) -> AdminAuditLog:
    """
    Record an admin action. The row joins the caller's transaction; the route commits.
    """
    details = metadata.copy() if metadata else {}
    if description:
        details["description"] = description

    audit_log = AdminAuditLog(
        admin_user_id=admin_user.id,
        action=action.value,
        target_type=target_type.value,
        target_id=target_id,
        details=details or None,
        ip_address=get_client_ip(request) if request else None,
        user_agent=request.headers.get("user-agent", "")[:500] if request else None,
    )
    db.add(audit_log)
    await db.flush()
    return audit_log
