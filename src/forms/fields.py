"""
Form Field Descriptions

A FormDefinition says which columns a record form collects, how each
one is typed in, and which cross-field rules apply. The UI renders
from it, the validator parses with it, and edit screens pre-fill
from it.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

from src.models.records import UserRecord
from src.models.validation import ValidationIssue
from src.money import encode_amount


class FieldKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    CURRENCY = "currency"
    DATE = "date"
    INTEGER = "integer"
    DECIMAL = "decimal"
    CHOICE = "choice"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    choices: tuple[str, ...] = ()
    min_value: Optional[Decimal] = None
    max_value: Optional[Decimal] = None
    placeholder: Optional[str] = None


# Receives the parsed values of a form, returns the problems found
FormCheck = Callable[[dict[str, Any]], list[ValidationIssue]]


@dataclass(frozen=True)
class FormDefinition:
    key: str
    title: str
    model: type[UserRecord]
    fields: tuple[FieldSpec, ...]
    checks: tuple[FormCheck, ...] = ()

    @property
    def table(self) -> str:
        return self.model.table_name

    @property
    def currency_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.kind == FieldKind.CURRENCY]

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def blank(self) -> dict[str, Any]:
        """Raw values of an empty form."""
        values: dict[str, Any] = {}
        for spec in self.fields:
            if spec.kind == FieldKind.BOOLEAN:
                values[spec.name] = True
            elif spec.kind == FieldKind.DATE:
                values[spec.name] = None
            else:
                values[spec.name] = ""
        return values

    def prefill(self, record: UserRecord) -> dict[str, Any]:
        """
        Raw values for editing an existing record.

        Amounts come back as display strings so the edit form starts in
        the same state the user would have typed it into.
        """
        values: dict[str, Any] = {}
        for spec in self.fields:
            value = getattr(record, spec.name, None)
            if spec.kind == FieldKind.CURRENCY:
                values[spec.name] = encode_amount(value)
            elif spec.kind == FieldKind.DECIMAL:
                values[spec.name] = "" if value is None else str(value).replace(".", ",")
            elif spec.kind == FieldKind.INTEGER:
                values[spec.name] = "" if value is None else str(value)
            elif spec.kind in (FieldKind.DATE, FieldKind.BOOLEAN):
                values[spec.name] = value
            else:
                values[spec.name] = value or ""
        return values


def coerce_date(value: Any) -> Optional[date]:
    """Accept a date, a datetime or an ISO string."""
    if value is None or value == "":
        return None
    if hasattr(value, "date") and callable(value.date):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())
