"""Tests for the two-stage form validator and the form definitions."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from src.forms import FORMS, FieldKind, beneficiary_share_issues, form_for_table
from src.forms.definitions import DEBT_FORM, GOAL_FORM, TRANSACTION_FORM
from src.forms.fields import coerce_date
from src.models.records import Debt, FinancialGoal, Transaction, Will
from src.validation import FormValidator, parse_decimal


def debt_input(**overrides) -> dict:
    raw = {
        "nome": "Financiamento do carro",
        "tipo": "Veículo",
        "credor": "Banco",
        "valor_original": "R$ 50.000,00",
        "saldo_devedor": "R$ 30.000,00",
        "valor_parcela": "R$ 1.000,00",
        "numero_parcelas": "48",
        "parcelas_pagas": "20",
        "taxa_juros": "1,5",
        "data_contratacao": date(2022, 1, 10),
        "data_vencimento": None,
        "status": "Ativo",
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def validator() -> FormValidator:
    return FormValidator(max_amount=Decimal("1000000"))


class TestFieldValidation:
    """Stage 1: presence, format and ranges."""

    def test_valid_debt(self, validator):
        user_id = uuid4()
        record, result = validator.validate(DEBT_FORM, debt_input(), user_id=user_id)

        assert result.is_valid
        assert isinstance(record, Debt)
        assert record.valor_original == Decimal("50000.00")
        assert record.numero_parcelas == 48
        assert record.taxa_juros == Decimal("1.5")
        assert record.user_id == user_id

    def test_missing_required_field(self, validator):
        record, result = validator.validate(DEBT_FORM, debt_input(credor="  "))

        assert record is None
        assert result.issues[0].field == "credor"
        assert result.issues[0].issue_type == "missing"
        assert result.issues[0].message == "Credor é obrigatório"

    def test_invalid_integer(self, validator):
        record, result = validator.validate(DEBT_FORM, debt_input(numero_parcelas="doze"))
        assert record is None
        assert result.issues[0].issue_type == "invalid_format"

    def test_fractional_integer_rejected(self, validator):
        _, result = validator.validate(DEBT_FORM, debt_input(numero_parcelas="4,5"))
        assert result.issues[0].field == "numero_parcelas"

    def test_choice_outside_options(self, validator):
        _, result = validator.validate(DEBT_FORM, debt_input(tipo="Agiota"))
        assert result.issues[0].issue_type == "invalid_value"

    def test_below_minimum(self, validator):
        _, result = validator.validate(DEBT_FORM, debt_input(numero_parcelas="0"))
        assert result.issues[0].issue_type == "out_of_range"

    def test_unparsable_currency_reads_as_zero(self, validator):
        """The codec never raises; the positive-amount check catches it."""
        record, result = validator.validate(TRANSACTION_FORM, {
            "data": date(2024, 3, 1),
            "descricao": "Mercado",
            "categoria": "Alimentação",
            "tipo": "despesa",
            "valor": "abc",
            "conta": "Nubank",
        })
        assert record is None
        assert result.issues[0].message == "O valor deve ser maior que zero."

    def test_all_problems_reported_at_once(self, validator):
        _, result = validator.validate(DEBT_FORM, debt_input(nome="", credor="", numero_parcelas="x"))
        assert {i.field for i in result.issues} == {"nome", "credor", "numero_parcelas"}


class TestSemanticValidation:
    """Stage 2: cross-field rules."""

    def test_paid_installments_above_total(self, validator):
        record, result = validator.validate(
            DEBT_FORM, debt_input(numero_parcelas="10", parcelas_pagas="12")
        )
        assert record is None
        assert result.issues[0].field == "parcelas_pagas"

    def test_balance_above_original_is_only_a_warning(self, validator):
        record, result = validator.validate(DEBT_FORM, debt_input(saldo_devedor="R$ 60.000,00"))
        assert record is not None
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_goal_current_above_target(self, validator):
        record, result = validator.validate(GOAL_FORM, {
            "titulo": "Viagem",
            "valor_objetivo": "R$ 1.000,00",
            "valor_atual": "R$ 2.000,00",
            "data_inicio": date(2024, 1, 1),
            "data_objetivo": date(2024, 12, 1),
        })
        assert record is None
        assert result.issues[0].message == "O valor atual não pode ser maior que a meta."

    def test_goal_blank_current_uses_default(self, validator):
        record, result = validator.validate(GOAL_FORM, {
            "titulo": "Viagem",
            "valor_objetivo": "R$ 1.000,00",
            "valor_atual": "",
            "data_inicio": "2024-01-01",
            "data_objetivo": "2024-12-01",
        })
        assert isinstance(record, FinancialGoal)
        assert record.valor_atual == Decimal("0.00")

    def test_absurd_amount_warns(self, validator):
        record, result = validator.validate(DEBT_FORM, debt_input(
            valor_original="R$ 5.000.000,00",
            saldo_devedor="R$ 1.000,00",
        ))
        assert record is not None
        assert any("alto demais" in w for w in result.warnings)

    def test_beneficiary_shares_above_hundred(self):
        assert beneficiary_share_issues([Decimal("60"), Decimal("40")]) == []
        issues = beneficiary_share_issues([Decimal("60"), Decimal("50")])
        assert len(issues) == 1
        assert "110" in issues[0].message


class TestEditing:
    """Editing keeps what the form does not show."""

    def test_edit_keeps_id_and_hidden_columns(self, validator):
        existing = Will(
            id=uuid4(),
            user_id=uuid4(),
            titulo="Testamento",
            tipo="Testamento Público",
            data_elaboracao=date(2023, 5, 1),
            status="Registrado",
        )
        raw = FORMS["testamento"].prefill(existing)
        raw["titulo"] = "Testamento revisado"

        record, result = validator.validate(FORMS["testamento"], raw, existing=existing)

        assert result.is_valid
        assert record.id == existing.id
        assert record.user_id == existing.user_id
        assert record.status == "Registrado"
        assert record.titulo == "Testamento revisado"

    def test_prefill_encodes_amounts(self):
        tx = Transaction(
            data=date(2024, 3, 1),
            descricao="Mercado",
            categoria="Alimentação",
            tipo="despesa",
            valor=Decimal("1234.50"),
            conta="Nubank",
        )
        raw = TRANSACTION_FORM.prefill(tx)
        assert raw["valor"] == "R$ 1.234,50"
        assert raw["data"] == date(2024, 3, 1)


class TestDefinitions:
    """Tests for the form catalogue."""

    def test_every_field_exists_on_model(self):
        for form in FORMS.values():
            for spec in form.fields:
                assert spec.name in form.model.model_fields, (form.key, spec.name)

    def test_choices_only_on_choice_fields(self):
        for form in FORMS.values():
            for spec in form.fields:
                assert bool(spec.choices) == (spec.kind == FieldKind.CHOICE), (form.key, spec.name)

    def test_form_for_table(self):
        assert form_for_table("dividas") is DEBT_FORM
        with pytest.raises(KeyError):
            form_for_table("contas_a_pagar")

    def test_blank(self):
        blank = DEBT_FORM.blank()
        assert blank["nome"] == ""
        assert blank["data_contratacao"] is None


class TestParsing:
    """Tests for number and date parsing helpers."""

    @pytest.mark.parametrize("text, expected", [
        ("1.234,5", Decimal("1234.5")),
        ("1234.5", Decimal("1234.5")),
        ("12%", Decimal("12")),
        (3, Decimal("3")),
    ])
    def test_parse_decimal(self, text, expected):
        assert parse_decimal(text) == expected

    @pytest.mark.parametrize("text", ["abc", "NaN", "Infinity"])
    def test_parse_decimal_rejects(self, text):
        with pytest.raises(ValueError):
            parse_decimal(text)

    def test_coerce_date(self):
        assert coerce_date("2024-02-29") == date(2024, 2, 29)
        assert coerce_date("") is None
        assert coerce_date(date(2024, 1, 1)) == date(2024, 1, 1)
