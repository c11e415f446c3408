"""
Tests for TRIAD3

Test strategy:
1. Unit tests for individual components (models, codec, metrics)
2. Integration tests for flows (with in-memory collaborators)
3. No real API calls in tests (use fakes and mocks)
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.records import (
    RECORD_TYPES,
    Beneficiary,
    Debt,
    FinancialGoal,
    Investment,
    Transaction,
)
from src.models.subscription import (
    EntitlementState,
    SubscriptionSnapshot,
    SubscriptionStatus,
    trial_days_remaining,
)
from src.models.validation import ValidationIssue, ValidationResult


def make_debt(**overrides) -> Debt:
    values = dict(
        nome="Financiamento",
        tipo="Imóvel",
        credor="Banco",
        valor_original=Decimal("100000.00"),
        saldo_devedor=Decimal("80000.00"),
        valor_parcela=Decimal("1000.00"),
        numero_parcelas=120,
        parcelas_pagas=20,
        data_contratacao=date(2020, 1, 10),
    )
    values.update(overrides)
    return Debt(**values)


class TestRecordModels:
    """Tests for the record Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(
            data=date(2024, 3, 1),
            descricao="  Mercado  ",
            categoria="Alimentação",
            tipo="despesa",
            valor=Decimal("250.40"),
            conta="Nubank",
        )
        assert tx.descricao == "Mercado"
        assert tx.valor == Decimal("250.40")

    def test_transaction_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            Transaction(
                data=date(2024, 3, 1),
                descricao="Mercado",
                categoria="Alimentação",
                tipo="transferencia",
                valor=Decimal("1.00"),
                conta="Nubank",
            )

    def test_money_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            make_debt(saldo_devedor=Decimal("-1.00"))

    def test_debt_paid_installments_cannot_exceed_total(self):
        with pytest.raises(ValueError, match="Parcelas pagas"):
            make_debt(numero_parcelas=10, parcelas_pagas=11)

    def test_investment_maturity_before_application_rejected(self):
        with pytest.raises(ValueError):
            Investment(
                nome="CDB",
                tipo="CDB",
                instituicao="Banco",
                valor_aplicado=Decimal("1000.00"),
                valor_atual=Decimal("1100.00"),
                data_aplicacao=date(2024, 5, 1),
                data_vencimento=date(2024, 4, 1),
            )

    def test_goal_deadline_before_start_rejected(self):
        with pytest.raises(ValueError):
            FinancialGoal(
                titulo="Viagem",
                valor_objetivo=Decimal("10000.00"),
                data_inicio=date(2024, 5, 1),
                data_objetivo=date(2024, 1, 1),
            )

    def test_beneficiary_cpf_format(self):
        assert Beneficiary(nome="Ana", cpf="123.456.789-09").cpf == "123.456.789-09"
        assert Beneficiary(nome="Ana", cpf="12345678909").cpf == "12345678909"
        with pytest.raises(ValueError, match="CPF"):
            Beneficiary(nome="Ana", cpf="123")

    def test_to_row_drops_server_columns(self):
        """Test serialization for the record store."""
        debt = make_debt(user_id=uuid4())
        row = debt.to_row()
        assert "id" not in row
        assert "created_at" not in row
        assert row["valor_original"] == "100000.00"
        assert row["data_contratacao"] == "2020-01-10"
        assert row["user_id"] == str(debt.user_id)

    def test_beneficiary_row_has_no_owner_column(self):
        row = Beneficiary(nome="Ana", cpf="12345678909", testamento_id=uuid4()).to_row()
        assert "user_id" not in row
        assert "testamento_id" in row

    def test_every_record_type_has_a_table(self):
        for table, model in RECORD_TYPES.items():
            assert table == model.table_name
        assert len(RECORD_TYPES) == 13


class TestSubscriptionModels:
    """Tests for subscription status and snapshot."""

    def test_snapshot_from_status(self):
        status = SubscriptionStatus(subscribed=True, is_trialing=True, status="trialing")
        snapshot = SubscriptionSnapshot.from_status(status)
        assert snapshot.state == EntitlementState.ENTITLED
        assert snapshot.is_entitled is True
        assert snapshot.is_trialing is True
        assert snapshot.checked_at is not None
        assert snapshot.user_id is None

    def test_snapshot_records_owner(self):
        owner = uuid4()
        snapshot = SubscriptionSnapshot.from_status(SubscriptionStatus(subscribed=True), user_id=owner)
        assert snapshot.user_id == owner

    def test_snapshot_not_subscribed(self):
        snapshot = SubscriptionSnapshot.from_status(SubscriptionStatus(subscribed=False))
        assert snapshot.state == EntitlementState.NOT_ENTITLED
        assert snapshot.is_resolved is True

    def test_status_ignores_unknown_fields(self):
        status = SubscriptionStatus.model_validate({"subscribed": True, "product_id": "prod_1"})
        assert status.subscribed is True

    def test_stale_snapshot(self):
        snapshot = SubscriptionSnapshot(state=EntitlementState.ENTITLED, error="timeout")
        assert snapshot.is_stale is True
        assert SubscriptionSnapshot(state=EntitlementState.ERROR, error="x").is_stale is False

    def test_default_snapshot_is_loading(self):
        snapshot = SubscriptionSnapshot()
        assert snapshot.state == EntitlementState.LOADING
        assert snapshot.is_resolved is False

    def test_trial_days_remaining(self):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert trial_days_remaining(now + timedelta(days=3), now) == 3
        assert trial_days_remaining(now + timedelta(days=2, hours=1), now) == 3
        assert trial_days_remaining(now - timedelta(days=1), now) == 0
        assert trial_days_remaining(None, now) is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Record created",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EMAIL_SENT,
            description="Welcome email sent",
            details={"recipient": "ana@example.com"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "email_sent"
        assert log_dict["details"]["recipient"] == "ana@example.com"

    def test_audit_event_builder_record_saved(self):
        """Test AuditEventBuilder.record_saved."""
        record_id = uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.record_saved(
            "dividas", record_id, uuid4(), created=False, correlation_id=correlation_id
        )

        assert event.event_type == AuditEventType.RECORD_UPDATED
        assert event.entity_id == record_id
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_entitlement_changed(self):
        event = AuditEventBuilder.entitlement_changed("loading", "entitled")
        assert event.event_type == AuditEventType.ENTITLEMENT_CHANGED
        assert event.details == {"previous": "loading", "current": "entitled"}


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            form="dividas",
            issues=[
                ValidationIssue(
                    field="valor_original",
                    issue_type="missing",
                    message="Valor original é obrigatório",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_valid is False

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            form="dividas",
            issues=[
                ValidationIssue(
                    field="saldo_devedor",
                    issue_type="out_of_range",
                    message="Saldo maior que o original",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Saldo maior que o original"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
