"""
Two-Stage Form Validation

DESIGN DECISION: Validation happens in two distinct stages, then the
record model gets the final word:

STAGE 1 - FIELD VALIDATION:
- Required field presence
- Format parsing (amounts, dates, numbers, choices)
- Range checks declared on the field

STAGE 2 - SEMANTIC VALIDATION:
- Cross-field rules of the form (paid installments vs total,
  current value vs goal, deadline vs start)
- Absurd amount detection

MODEL CHECK:
- The pydantic record is built; anything it rejects becomes an issue

Validation runs synchronously and never touches the network, so a form
with a problem never reaches the record store.

IMPORTANT: Validation NEVER silently fixes issues. Amount fields are the
one exception by nature: the currency codec reads junk as zero.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError

from src.config import get_settings
from src.forms.fields import FieldKind, FieldSpec, FormDefinition, coerce_date
from src.models.records import UserRecord
from src.models.validation import ValidationIssue, ValidationResult
from src.money import decode, format_currency, to_canonical


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_decimal(value: Any) -> Decimal:
    """
    Read a number typed in pt-BR or plain style ("1.234,5" or "1234.5").

    Raises:
        ValueError: If the text is not a number
    """
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    text = str(value).strip().replace("%", "").replace(" ", "")
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        number = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return number


def parse_integer(value: Any) -> int:
    number = parse_decimal(value)
    if number != number.to_integral_value():
        raise ValueError(f"Not a whole number: {value!r}")
    return int(number)


class FormValidator:
    """
    Validates raw form input through a two-stage pipeline.

    Stage 1: Field validation (presence, format, range)
    Stage 2: Semantic validation (cross-field rules)
    """

    def __init__(self, max_amount: Optional[Decimal] = None):
        """
        Args:
            max_amount: Amounts above this raise a warning.
                        Defaults to the configured sanity limit.
        """
        if max_amount is None:
            max_amount = Decimal(str(get_settings().app.max_amount_brl))
        self._max_amount = max_amount

    def _parse_field(self, spec: FieldSpec, raw: Any) -> tuple[Any, Optional[ValidationIssue]]:
        if spec.kind == FieldKind.BOOLEAN:
            return bool(raw), None

        if _is_blank(raw):
            if spec.required:
                return None, ValidationIssue(
                    field=spec.name,
                    issue_type="missing",
                    message=f"{spec.label} é obrigatório",
                    suggested_fix=f"Preencha o campo {spec.label}",
                )
            return None, None

        try:
            if spec.kind == FieldKind.CURRENCY:
                value = decode(raw) if isinstance(raw, str) else to_canonical(raw)
            elif spec.kind == FieldKind.DATE:
                value = coerce_date(raw)
            elif spec.kind == FieldKind.INTEGER:
                value = parse_integer(raw)
            elif spec.kind == FieldKind.DECIMAL:
                value = parse_decimal(raw)
            else:
                value = str(raw).strip()
        except (ValueError, InvalidOperation, ArithmeticError):
            return None, ValidationIssue(
                field=spec.name,
                issue_type="invalid_format",
                message=f"{spec.label} está em um formato inválido",
            )

        if spec.kind == FieldKind.CHOICE and spec.choices and value not in spec.choices:
            return None, ValidationIssue(
                field=spec.name,
                issue_type="invalid_value",
                message=f"{spec.label}: opção inválida",
                suggested_fix=f"Escolha uma de: {', '.join(spec.choices)}",
            )

        if spec.kind in (FieldKind.CURRENCY, FieldKind.INTEGER, FieldKind.DECIMAL):
            if spec.min_value is not None and value < spec.min_value:
                return None, ValidationIssue(
                    field=spec.name,
                    issue_type="out_of_range",
                    message=f"{spec.label} deve ser no mínimo {spec.min_value}",
                )
            if spec.max_value is not None and value > spec.max_value:
                return None, ValidationIssue(
                    field=spec.name,
                    issue_type="out_of_range",
                    message=f"{spec.label} deve ser no máximo {spec.max_value}",
                )

        return value, None

    def _validate_fields(
        self,
        definition: FormDefinition,
        raw: dict[str, Any],
    ) -> tuple[dict[str, Any], list[ValidationIssue]]:
        """
        Stage 1: parse every field.

        Returns: (parsed_values, list_of_issues)
        """
        values: dict[str, Any] = {}
        issues: list[ValidationIssue] = []

        for spec in definition.fields:
            value, issue = self._parse_field(spec, raw.get(spec.name))
            if issue:
                issues.append(issue)
            values[spec.name] = value

        return values, issues

    def _validate_semantic(
        self,
        definition: FormDefinition,
        values: dict[str, Any],
    ) -> list[ValidationIssue]:
        """Stage 2: cross-field rules and sanity limits."""
        issues: list[ValidationIssue] = []

        for name in definition.currency_fields:
            amount = values.get(name)
            if amount is not None and amount > self._max_amount:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="suspicious_value",
                    message=(
                        f"{definition.field(name).label} ({format_currency(amount)}) "
                        "parece alto demais"
                    ),
                    severity="warning",
                    suggested_fix="Confira se o valor está correto",
                ))

        for check in definition.checks:
            issues.extend(check(values))

        return issues

    @staticmethod
    def _build_record(
        definition: FormDefinition,
        values: dict[str, Any],
        user_id: Optional[UUID],
        existing: Optional[UserRecord],
        extra: Optional[dict[str, Any]],
    ) -> tuple[Optional[UserRecord], list[ValidationIssue]]:
        # Columns the form does not show survive an edit untouched
        data = existing.model_dump(exclude={"updated_at"}) if existing is not None else {}
        for name, value in values.items():
            if value is None:
                field_info = definition.model.model_fields[name]
                if field_info.is_required():
                    data.pop(name, None)
                    continue
                value = field_info.get_default(call_default_factory=True)
            data[name] = value
        if extra:
            data.update(extra)
        if definition.model.owner_column and user_id is not None and not data.get("user_id"):
            data["user_id"] = user_id

        try:
            return definition.model.model_validate(data), []
        except ValidationError as e:
            issues = []
            for error in e.errors():
                loc = error.get("loc") or ()
                message = str(error.get("msg", "Valor inválido"))
                if message.startswith("Value error, "):
                    message = message[len("Value error, "):]
                issues.append(ValidationIssue(
                    field=str(loc[0]) if loc else "form",
                    issue_type="invalid_value",
                    message=message,
                ))
            return None, issues

    def validate(
        self,
        definition: FormDefinition,
        raw: dict[str, Any],
        user_id: Optional[UUID] = None,
        existing: Optional[UserRecord] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> tuple[Optional[UserRecord], ValidationResult]:
        """
        Run the full pipeline on raw form input.

        Args:
            definition: The form being submitted
            raw: Field name -> what the widget holds
            user_id: Owner of a new record
            existing: The record being edited, if any
            extra: Columns set by the caller rather than the user

        Returns:
            (record or None, validation_result)
        """
        values, issues = self._validate_fields(definition, raw)
        result = ValidationResult(form=definition.table, issues=issues)

        # Only run stage 2 if stage 1 passes
        if result.has_errors:
            return None, result

        result.issues.extend(self._validate_semantic(definition, values))
        if result.has_errors:
            return None, result

        record, model_issues = self._build_record(definition, values, user_id, existing, extra)
        result.issues.extend(model_issues)
        return (None if result.has_errors else record), result

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One message for the toast shown above the form."""
        if result.is_valid and not result.warnings:
            return "Tudo certo!"

        lines = []
        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            lines.append("Corrija os campos abaixo:")
            lines.extend(f"• {i.message}" for i in errors)
        if result.warnings:
            lines.append("Atenção:")
            lines.extend(f"• {w}" for w in result.warnings)
        return "\n".join(lines)
