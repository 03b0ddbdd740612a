"""Audit trail functionality for the SAML IdP engine.

This module provides structured audit logging for issued assertions,
responses and signature verification decisions.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)

# Key fields, logged first and in this order
FIELD_ORDER = [
    "status",
    "assertion_id",
    "response_id",
    "issuer",
    "audience",
    "name_id",
    "signed",
    "encrypted",
    "trusted",
    "duration",
    "error_message",
    "correlation_id",
]


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Creates a structured audit log entry with standard fields. Audit events
    are logged at INFO level for successful operations and ERROR level for
    failures.

    Args:
        event_type: Type of operation (e.g., "ASSERTION_ISSUED",
                   "RESPONSE_ISSUED", "SIGNATURE_VERIFIED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - assertion_id / response_id: XML IDs involved
                - audience: Service provider entity id
                - duration: Operation duration in seconds
                - correlation_id: Optional correlation ID for related events

    Example:
        >>> log_audit_event("ASSERTION_ISSUED", {
        ...     "assertion_id": "_abc123",
        ...     "audience": "https://sp.example",
        ...     "status": "success",
        ...     "duration": 0.01
        ... })
    """
    details = dict(details)
    details.setdefault("timestamp", time.time())
    details.setdefault("correlation_id", str(uuid.uuid4()))

    message_parts = [f"AUDIT [{event_type}]"]

    for field in FIELD_ORDER:
        if field in details:
            value = details[field]
            if field == "duration" and isinstance(value, (int, float)):
                message_parts.append(f"{field}={value:.3f}s")
            else:
                message_parts.append(f"{field}={value}")

    for key, value in details.items():
        if key not in FIELD_ORDER and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    if details.get("status") == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)
