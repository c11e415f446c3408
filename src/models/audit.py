"""
Audit Models for TRIAD3

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every write to the user's records
2. Debugging information when a collaborator fails
3. A history of entitlement changes and outgoing emails

DESIGN DECISION: Audit events are structured, never free text, so
they can be filtered by type and entity in the log pipeline.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    VALIDATION_FAILED = "validation_failed"
    SAVE_FAILED = "save_failed"

    # Authentication
    USER_SIGNED_UP = "user_signed_up"
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"

    # Subscription
    ENTITLEMENT_CHANGED = "entitlement_changed"
    ENTITLEMENT_CHECK_FAILED = "entitlement_check_failed"
    CHECKOUT_OPENED = "checkout_opened"
    PORTAL_OPENED = "portal_opened"

    # Email
    EMAIL_SENT = "email_sent"
    EMAIL_FAILED = "email_failed"
    WEBHOOK_REJECTED = "webhook_rejected"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Table or entity kind (e.g., 'dividas', 'subscription')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[UUID] = Field(
        default=None,
        description="Authenticated user the event belongs to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one form submission)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_saved("dividas", record_id, user_id, created=True)
        event = AuditEventBuilder.email_sent("welcome", "ana@example.com")
    """

    @staticmethod
    def record_saved(
        table: str,
        record_id: Optional[UUID],
        user_id: Optional[UUID],
        created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.RECORD_CREATED if created else AuditEventType.RECORD_UPDATED
            ),
            entity_type=table,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Record {'created' if created else 'updated'} in {table}",
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        table: str,
        record_id: UUID,
        user_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=table,
            entity_id=record_id,
            user_id=user_id,
            description=f"Record deleted from {table}",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        table: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=table,
            correlation_id=correlation_id,
            description=f"Form for {table} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        table: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=table,
            correlation_id=correlation_id,
            description=f"Saving to {table} failed",
            error_message=error_message,
        )

    @staticmethod
    def auth_event(
        event_type: AuditEventType,
        user_id: Optional[UUID],
        email: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description=event_type.value.replace("_", " ").capitalize(),
            details={"email": email} if email else {},
            is_user_action=True,
        )

    @staticmethod
    def entitlement_changed(
        previous: str,
        current: str,
        user_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITLEMENT_CHANGED,
            entity_type="subscription",
            user_id=user_id,
            description=f"Entitlement changed: {previous} -> {current}",
            details={"previous": previous, "current": current},
        )

    @staticmethod
    def entitlement_check_failed(
        error_message: str,
        kept_state: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITLEMENT_CHECK_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="subscription",
            description="Entitlement check failed, keeping previous state",
            error_message=error_message,
            details={"kept_state": kept_state},
        )

    @staticmethod
    def billing_redirect(
        event_type: AuditEventType,
        user_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="subscription",
            user_id=user_id,
            description=event_type.value.replace("_", " ").capitalize(),
            is_user_action=True,
        )

    @staticmethod
    def email_sent(
        template: str,
        recipient: str,
        provider_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EMAIL_SENT,
            entity_type="email",
            description=f"{template.capitalize()} email sent",
            details={
                "template": template,
                "recipient": recipient,
                "provider_id": provider_id,
            },
        )

    @staticmethod
    def email_failed(
        template: str,
        error_message: str,
        recipient: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EMAIL_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="email",
            description=f"{template.capitalize()} email failed",
            error_message=error_message,
            details={"template": template, "recipient": recipient},
        )

    @staticmethod
    def webhook_rejected(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WEBHOOK_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="email",
            description="Signed webhook rejected",
            error_message=reason,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
