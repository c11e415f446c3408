"""
Sign-in and sign-up form checks.

Same (payload, issues) contract as the record forms, so the auth
screens go through submit_form as well.
"""

import re
from typing import Optional

from pydantic import BaseModel

from src.models.validation import ValidationIssue

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD = 6
MAX_PASSWORD = 72
MIN_NAME = 3
MAX_NAME = 100


class Credentials(BaseModel):
    email: str
    password: str
    full_name: Optional[str] = None


def _email_issues(email: str) -> list[ValidationIssue]:
    if len(email) > 255 or not EMAIL_PATTERN.match(email):
        return [ValidationIssue(field="email", issue_type="invalid_format", message="Email inválido")]
    return []


def _password_issues(password: str) -> list[ValidationIssue]:
    if len(password) < MIN_PASSWORD:
        return [ValidationIssue(
            field="password",
            issue_type="out_of_range",
            message=f"Senha deve ter no mínimo {MIN_PASSWORD} caracteres",
        )]
    if len(password) > MAX_PASSWORD:
        return [ValidationIssue(
            field="password",
            issue_type="out_of_range",
            message=f"Senha deve ter no máximo {MAX_PASSWORD} caracteres",
        )]
    return []


def validate_sign_in(email: str, password: str) -> tuple[Optional[Credentials], list[ValidationIssue]]:
    email = (email or "").strip()
    issues = _email_issues(email) + _password_issues(password or "")
    if issues:
        return None, issues
    return Credentials(email=email, password=password), []


def validate_sign_up(
    email: str,
    password: str,
    full_name: str,
) -> tuple[Optional[Credentials], list[ValidationIssue]]:
    email = (email or "").strip()
    name = (full_name or "").strip()
    issues = _email_issues(email) + _password_issues(password or "")
    if not MIN_NAME <= len(name) <= MAX_NAME:
        issues.append(ValidationIssue(
            field="full_name",
            issue_type="out_of_range",
            message=f"Nome deve ter no mínimo {MIN_NAME} caracteres",
        ))
    if issues:
        return None, issues
    return Credentials(email=email, password=password, full_name=name), []
