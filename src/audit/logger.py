"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of every write to the user's records
2. Debugging capability when a collaborator fails
3. A short in-process history the settings page can show

The audit logger:
- Is async so callers await it in the same flow as their remote calls
- Gracefully handles failures (a broken log sink never breaks a save)
- Supports correlation IDs to trace related events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps the most recent
    ones in memory.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    @property
    def history(self) -> list[AuditEvent]:
        """Recent events, newest last."""
        return list(self._history)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the local log sink raised.
        """
        self._history.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            structlog.get_logger(__name__).error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

        return True

    async def log_record_saved(
        self,
        table: str,
        record_id: Optional[UUID],
        user_id: Optional[UUID],
        created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_saved(
            table=table,
            record_id=record_id,
            user_id=user_id,
            created=created,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        table: str,
        record_id: UUID,
        user_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(table, record_id, user_id))

    async def log_validation_failed(
        self,
        table: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(table, issues, correlation_id))

    async def log_save_failed(
        self,
        table: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(table, error_message, correlation_id))

    async def log_auth_event(
        self,
        event_type: AuditEventType,
        user_id: Optional[UUID],
        email: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.auth_event(event_type, user_id, email))

    async def log_entitlement_changed(
        self,
        previous: str,
        current: str,
        user_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entitlement_changed(previous, current, user_id))

    async def log_entitlement_check_failed(self, error_message: str, kept_state: str) -> None:
        await self.log(AuditEventBuilder.entitlement_check_failed(error_message, kept_state))

    async def log_billing_redirect(
        self,
        event_type: AuditEventType,
        user_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.billing_redirect(event_type, user_id))

    async def log_email_sent(
        self,
        template: str,
        recipient: str,
        provider_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.email_sent(template, recipient, provider_id))

    async def log_email_failed(
        self,
        template: str,
        error_message: str,
        recipient: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.email_failed(template, error_message, recipient))

    async def log_webhook_rejected(self, reason: str) -> None:
        await self.log(AuditEventBuilder.webhook_rejected(reason))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a form submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
