"""
Audit logging for authentication and stock-affecting operations.

Every entry is a single JSON line on the "audit" logger so it can be shipped
to centralized logging separately from application logs.
Passwords and tokens are never included.
"""
import logging
import json
from datetime import datetime
from typing import Any, Optional, Dict

# Separate logger for audit events
audit_logger = logging.getLogger("audit")


def _emit(entry: Dict[str, Any], level: int = logging.INFO) -> None:
    entry = {"timestamp": datetime.utcnow().isoformat(), **entry}
    audit_logger.log(level, json.dumps(entry, default=str))


class AuditLog:
    """Central audit logging for security-critical and workflow events."""

    @staticmethod
    def log_authentication(
        action: str,  # "login", "register", "failed_login", "token_rejected"
        email: Optional[str],
        ip_address: str,
        success: bool,
        reason: str = "",
    ):
        """
        Usage:
            AuditLog.log_authentication("login", "user@example.com", "192.168.1.1", True)
            AuditLog.log_authentication("failed_login", "user@example.com", "10.0.0.7", False, reason="Invalid password")
        """
        entry = {
            "event_type": f"auth.{action}",
            "email": email,
            "ip_address": ip_address,
            "success": success,
        }
        if reason and not success:
            entry["reason"] = reason
        _emit(entry, logging.INFO if success else logging.WARNING)

    @staticmethod
    def log_action(
        action: str,  # "create", "update", "delete", "validate", "dispense", "approve", ...
        resource_type: str,  # "medicine", "prescription", "reorder_request"
        resource_id: Optional[int],
        user_id: Optional[int],
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a change to an important resource: who, what, when.

        user_id is None for system-initiated changes (the restocking sweep).

        Usage:
            AuditLog.log_action("dispense", "prescription", 12, current_user.id, changes={"items": 2})
        """
        entry = {
            "event_type": f"{resource_type}.{action}",
            "user_id": user_id,
            "resource_id": resource_id,
        }
        if changes:
            entry["changes"] = changes
        _emit(entry)

    @staticmethod
    def log_access_denied(
        path: str,
        user_id: Optional[int],
        role: Optional[str],
        required: str,
    ):
        """Log a role check that failed."""
        _emit(
            {
                "event_severity": "WARNING",
                "event_type": "access_denied",
                "path": path,
                "user_id": user_id,
                "role": role,
                "required_permission": required,
            },
            logging.WARNING,
        )

    @staticmethod
    def log_workflow(
        workflow: str,  # "inventory", "prescription", "reordering", "analytics", "chatbot"
        message: str,
        **details: Any,
    ):
        """
        Log a workflow milestone with structured details.

        Usage:
            AuditLog.log_workflow("reordering", "Sweep completed", created=2, updated=1)
        """
        _emit({"event_type": f"workflow.{workflow}", "message": message, **details})
