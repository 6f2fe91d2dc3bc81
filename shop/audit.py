# shop/audit.py - best-effort audit sink
import logging
from typing import Any, Dict, Optional

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


class AuditSink:
    """
    Append-only audit log. `record` never raises: a failed write is logged
    as a warning and reported as False to the caller.
    """

    def __init__(self, using: str = "default"):
        self.using = using

    def record(self, user_id, action: str, resource: Optional[str] = None,
               metadata: Optional[Dict[str, Any]] = None) -> bool:
        try:
            # own savepoint so a failed insert cannot poison an enclosing transaction
            with transaction.atomic(using=self.using):
                AuditLog.objects.using(self.using).create(
                    user_id=user_id,
                    action=action,
                    resource=resource,
                    metadata=metadata,
                )
        except Exception as e:
            logger.warning(f"audit log failed: action={action} resource={resource} error={e}")
            return False
        return True

    def record_on_commit(self, user_id, action: str, resource: Optional[str] = None,
                         metadata: Optional[Dict[str, Any]] = None) -> None:
        """Defers `record` until the current transaction commits (dropped on rollback)."""
        transaction.on_commit(
            lambda: self.record(user_id, action, resource, metadata),
            using=self.using,
        )
