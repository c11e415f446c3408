"""Record forms package."""

from src.forms.credentials import Credentials, validate_sign_in, validate_sign_up
from src.forms.definitions import (
    BENEFICIARY_FORM,
    FORMS,
    WILL_FORM,
    beneficiary_share_issues,
    form_for_table,
)
from src.forms.fields import FieldKind, FieldSpec, FormDefinition
from src.forms.submission import (
    GENERIC_ERROR_MESSAGE,
    FormResult,
    Ok,
    RemoteFailed,
    ValidationFailed,
    submit_form,
)

__all__ = [
    "BENEFICIARY_FORM",
    "Credentials",
    "FORMS",
    "FieldKind",
    "FieldSpec",
    "FormDefinition",
    "FormResult",
    "GENERIC_ERROR_MESSAGE",
    "Ok",
    "RemoteFailed",
    "ValidationFailed",
    "WILL_FORM",
    "beneficiary_share_issues",
    "form_for_table",
    "submit_form",
    "validate_sign_in",
    "validate_sign_up",
]
