"""
Main Orchestrator for TRIAD3

This module ties together all the components and defines the
end-to-end flows for:
1. Record forms (raw input -> validate -> persist once -> report)
2. Authentication (credentials -> sign in/up -> subscription refresh)
3. Subscription (status cache, checkout and portal redirects)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No form reaches the record store before it validates
- No write is retried behind the user's back
- Every step is audited

create_app_components is the composition root: the one place that
decides which collaborators are real and which are in-memory.
"""

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from src.audit import AuditLogger, create_correlation_id
from src.forms import (
    BENEFICIARY_FORM,
    WILL_FORM,
    Credentials,
    FormDefinition,
    FormResult,
    Ok,
    RemoteFailed,
    ValidationFailed,
    beneficiary_share_issues,
    submit_form,
    validate_sign_in,
    validate_sign_up,
)
from src.models.audit import AuditEventType
from src.models.records import Beneficiary, UserRecord, Will
from src.models.subscription import SubscriptionStatus
from src.models.validation import ValidationIssue
from src.services.auth import (
    AuthServiceInterface,
    AuthSession,
    AuthUser,
    InMemoryAuthService,
    InvalidCredentialsError,
    SupabaseAuthService,
    UserAlreadyRegisteredError,
)
from src.services.billing import (
    BillingError,
    SubscriptionServiceInterface,
    SupabaseSubscriptionService,
)
from src.services.storage import (
    InMemoryRecordStorage,
    RecordStorageInterface,
    StorageError,
    SupabaseClient,
    SupabaseRecordStorage,
)
from src.subscription import SubscriptionCache
from src.validation import FormValidator

logger = structlog.get_logger(__name__)


class RecordFormFlow:
    """
    Orchestrates create, edit and delete for every record form.

    Flow:
    1. Validate → FormValidator, no network
    2. Persist → one insert or update
    3. Audit → saved, rejected or failed
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        auth: AuthServiceInterface,
        validator: Optional[FormValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._auth = auth
        self._validator = validator or FormValidator()
        self._audit_logger = audit_logger

    @property
    def validator(self) -> FormValidator:
        return self._validator

    def _user_id(self) -> Optional[UUID]:
        user = self._auth.current_user
        return user.id if user else None

    async def _audit_result(
        self,
        table: str,
        result: FormResult,
        created: bool,
        correlation_id: UUID,
    ) -> None:
        if not self._audit_logger:
            return

        if isinstance(result, Ok):
            record = result.value
            await self._audit_logger.log_record_saved(
                table=table,
                record_id=getattr(record, "id", None),
                user_id=self._user_id(),
                created=created,
                correlation_id=correlation_id,
            )
        elif isinstance(result, ValidationFailed):
            await self._audit_logger.log_validation_failed(
                table=table,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
                correlation_id=correlation_id,
            )
        elif isinstance(result, RemoteFailed):
            await self._audit_logger.log_save_failed(
                table=table,
                error_message=result.message,
                correlation_id=correlation_id,
            )

    async def save(
        self,
        definition: FormDefinition,
        raw: dict[str, Any],
        existing: Optional[UserRecord] = None,
        correlation_id: Optional[UUID] = None,
    ) -> FormResult:
        """
        Create a record, or update `existing` with the form values.

        Returns:
            Ok(stored record), ValidationFailed or RemoteFailed
        """
        correlation_id = correlation_id or create_correlation_id()

        def validate():
            record, result = self._validator.validate(
                definition, raw, user_id=self._user_id(), existing=existing
            )
            return record, list(result.issues)

        async def persist(record: UserRecord) -> UserRecord:
            self._auth.require_session()
            if existing is None:
                return await self._storage.insert(record)
            return await self._storage.update(record)

        result = await submit_form(validate, persist)
        await self._audit_result(definition.table, result, existing is None, correlation_id)
        return result

    async def save_will(
        self,
        will_raw: dict[str, Any],
        beneficiaries_raw: list[dict[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> FormResult:
        """
        Create a will together with its beneficiaries.

        Every beneficiary is validated before the will is inserted, and
        their shares may not add up to more than 100%. The heirs go in
        one batch; if it fails the will is removed again.
        """
        correlation_id = correlation_id or create_correlation_id()

        def validate():
            issues: list[ValidationIssue] = []
            will, result = self._validator.validate(WILL_FORM, will_raw, user_id=self._user_id())
            issues.extend(result.issues)

            beneficiaries: list[Beneficiary] = []
            if not beneficiaries_raw:
                issues.append(ValidationIssue(
                    field="beneficiarios",
                    issue_type="missing",
                    message="Adicione pelo menos um beneficiário",
                ))
            for index, raw in enumerate(beneficiaries_raw, start=1):
                beneficiary, ben_result = self._validator.validate(BENEFICIARY_FORM, raw)
                for issue in ben_result.issues:
                    issues.append(issue.model_copy(
                        update={"message": f"Beneficiário {index}: {issue.message}"}
                    ))
                if beneficiary is not None:
                    beneficiaries.append(beneficiary)

            issues.extend(beneficiary_share_issues(
                [b.percentual_heranca for b in beneficiaries if b.percentual_heranca is not None]
            ))

            if will is None or len(beneficiaries) != len(beneficiaries_raw):
                return None, issues
            return (will, beneficiaries), issues

        async def persist(payload: tuple[Will, list[Beneficiary]]) -> Will:
            session = self._auth.require_session()
            will, beneficiaries = payload
            stored = await self._storage.insert(will)
            try:
                await self._storage.insert_many([
                    b.model_copy(update={"testamento_id": stored.id}) for b in beneficiaries
                ])
            except StorageError:
                # No will is kept without its heirs
                logger.warning("will_rolled_back", will_id=str(stored.id))
                try:
                    await self._storage.delete(Will, stored.id, session.user.id)
                except StorageError as cleanup_error:
                    logger.error(
                        "will_rollback_failed", will_id=str(stored.id), error=str(cleanup_error)
                    )
                raise
            return stored

        result = await submit_form(validate, persist)
        await self._audit_result(WILL_FORM.table, result, True, correlation_id)
        return result

    async def delete(self, record_type: type[UserRecord], record_id: UUID) -> FormResult:
        """Delete one of the user's records."""

        def validate():
            return record_id, []

        async def persist(rid: UUID) -> bool:
            session = self._auth.require_session()
            deleted = await self._storage.delete(record_type, rid, session.user.id)
            if deleted and self._audit_logger:
                await self._audit_logger.log_record_deleted(
                    record_type.table_name, rid, session.user.id
                )
            return deleted

        return await submit_form(validate, persist, generic_message="Erro ao excluir o registro.")

    async def list_records(
        self,
        record_type: type[UserRecord],
        filters: Optional[dict[str, str]] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True,
    ) -> list[UserRecord]:
        session = self._auth.require_session()
        return await self._storage.list_for_user(
            record_type,
            session.user.id,
            filters=filters,
            order_by=order_by,
            descending=descending,
        )

    async def list_beneficiaries(self, will_id: UUID) -> list[Beneficiary]:
        return await self.list_records(
            Beneficiary,
            filters={"testamento_id": str(will_id)},
            order_by="nome",
            descending=False,
        )


class AuthFlow:
    """
    Sign-up, sign-in and sign-out.

    The subscription cache hears about every sign-in/out through the
    auth service's listeners; nothing here calls it directly.
    """

    def __init__(
        self,
        auth: AuthServiceInterface,
        audit_logger: Optional[AuditLogger] = None,
        redirect_to: Optional[str] = None,
    ):
        self._auth = auth
        self._audit_logger = audit_logger
        self._redirect_to = redirect_to

    async def sign_in(self, email: str, password: str) -> FormResult:
        async def persist(credentials: Credentials) -> AuthSession:
            try:
                return await self._auth.sign_in_with_password(
                    credentials.email, credentials.password
                )
            except InvalidCredentialsError as e:
                raise InvalidCredentialsError("Email ou senha incorretos") from e

        result = await submit_form(
            lambda: validate_sign_in(email, password),
            persist,
            generic_message="Erro ao fazer login.",
        )
        if isinstance(result, Ok) and self._audit_logger:
            await self._audit_logger.log_auth_event(
                AuditEventType.USER_SIGNED_IN, result.value.user.id, result.value.user.email
            )
        return result

    async def sign_up(self, email: str, password: str, full_name: str) -> FormResult:
        """
        Create the account, then sign in right away.

        When the project requires email confirmation the sign-in fails
        and the user is asked to confirm first; the result is still Ok.
        """
        async def persist(credentials: Credentials) -> AuthUser:
            try:
                user = await self._auth.sign_up(
                    credentials.email,
                    credentials.password,
                    full_name=credentials.full_name,
                    redirect_to=self._redirect_to,
                )
            except UserAlreadyRegisteredError as e:
                raise UserAlreadyRegisteredError("Este email já está cadastrado") from e

            if self._auth.session is None:
                try:
                    await self._auth.sign_in_with_password(credentials.email, credentials.password)
                except InvalidCredentialsError:
                    logger.info("sign_in_after_sign_up_pending_confirmation")
            return user

        result = await submit_form(
            lambda: validate_sign_up(email, password, full_name),
            persist,
            generic_message="Erro ao criar conta.",
        )
        if isinstance(result, Ok) and self._audit_logger:
            await self._audit_logger.log_auth_event(
                AuditEventType.USER_SIGNED_UP, result.value.id, result.value.email
            )
        return result

    async def sign_out(self) -> None:
        user = self._auth.current_user
        await self._auth.sign_out()
        if self._audit_logger:
            await self._audit_logger.log_auth_event(
                AuditEventType.USER_SIGNED_OUT, user.id if user else None
            )


class OfflineSubscriptionService(SubscriptionServiceInterface):
    """
    Entitlement source for offline runs: every signed-in user is entitled.

    Checkout and portal have nowhere to go without the hosted backend.
    """

    async def check_subscription(self, access_token: str) -> SubscriptionStatus:
        return SubscriptionStatus(subscribed=True, status="offline")

    async def create_checkout(self, access_token: str) -> str:
        raise BillingError("Pagamentos indisponíveis no modo offline.")

    async def open_customer_portal(self, access_token: str) -> str:
        raise BillingError("Portal indisponível no modo offline.")


@dataclass
class AppComponents:
    auth: AuthServiceInterface
    storage: RecordStorageInterface
    subscription: SubscriptionCache
    records: RecordFormFlow
    auth_flow: AuthFlow
    audit_logger: AuditLogger
    offline: bool


def create_app_components(
    use_backend: bool = True,
    redirect_to: Optional[str] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    The result holds one user's session, access token, entitlement
    snapshot and audit history: build one per browser session.

    Args:
        use_backend: Whether to connect to the hosted backend.
                     Falls back to in-memory collaborators when it is
                     not configured, or when False (tests, demos).
        redirect_to: Where confirmation links send the user.
    """
    audit_logger = AuditLogger()
    offline = True
    auth: AuthServiceInterface
    storage: RecordStorageInterface
    billing: SubscriptionServiceInterface

    if use_backend:
        try:
            client = SupabaseClient()
            auth = SupabaseAuthService(client)
            storage = SupabaseRecordStorage(client)
            billing = SupabaseSubscriptionService(client)
            offline = False
        except ValidationError as e:
            # Backend not configured - continue without it
            logger.warning("backend_not_configured", error=str(e))

    if offline:
        auth = InMemoryAuthService()
        storage = InMemoryRecordStorage()
        billing = OfflineSubscriptionService()

    subscription = SubscriptionCache(billing, auth, audit_logger=audit_logger)

    return AppComponents(
        auth=auth,
        storage=storage,
        subscription=subscription,
        records=RecordFormFlow(storage, auth, audit_logger=audit_logger),
        auth_flow=AuthFlow(auth, audit_logger=audit_logger, redirect_to=redirect_to),
        audit_logger=audit_logger,
        offline=offline,
    )
