"""Tests for the generic form-submission helper."""

import asyncio

from src.forms import (
    GENERIC_ERROR_MESSAGE,
    Ok,
    RemoteFailed,
    ValidationFailed,
    submit_form,
    validate_sign_in,
    validate_sign_up,
)
from src.models.validation import ValidationIssue
from src.services.auth import NotAuthenticatedError
from src.services.storage import StorageError

ERROR = ValidationIssue(field="valor", issue_type="missing", message="Valor é obrigatório")
WARNING = ValidationIssue(
    field="valor", issue_type="suspicious_value", message="Valor alto", severity="warning"
)


class Recorder:
    """A persistence call that counts invocations."""

    def __init__(self, result=None, error: Exception = None):
        self.calls = []
        self.result = result
        self.error = error

    async def __call__(self, payload):
        self.calls.append(payload)
        if self.error:
            raise self.error
        return self.result if self.result is not None else payload


class TestSubmitForm:
    """submit_form validates, persists once and reports."""

    def test_ok(self):
        persist = Recorder(result="saved")
        result = asyncio.run(submit_form(lambda: ({"valor": 1}, []), persist))

        assert isinstance(result, Ok)
        assert result.value == "saved"
        assert persist.calls == [{"valor": 1}]

    def test_validation_error_skips_persist(self):
        persist = Recorder()
        result = asyncio.run(submit_form(lambda: (None, [ERROR]), persist))

        assert isinstance(result, ValidationFailed)
        assert result.messages == ["Valor é obrigatório"]
        assert persist.calls == []

    def test_error_issue_blocks_even_with_payload(self):
        persist = Recorder()
        result = asyncio.run(submit_form(lambda: ({"valor": 1}, [ERROR]), persist))

        assert isinstance(result, ValidationFailed)
        assert persist.calls == []

    def test_warnings_pass_through(self):
        result = asyncio.run(submit_form(lambda: ("payload", [WARNING]), Recorder()))

        assert isinstance(result, Ok)
        assert result.warnings == ("Valor alto",)

    def test_collaborator_error_message_is_shown(self):
        persist = Recorder(error=StorageError("Permissão negada"))
        result = asyncio.run(submit_form(lambda: ("payload", []), persist))

        assert isinstance(result, RemoteFailed)
        assert result.message == "Permissão negada"
        assert isinstance(result.error, StorageError)
        assert len(persist.calls) == 1

    def test_auth_error_is_remote_failure(self):
        persist = Recorder(error=NotAuthenticatedError("Você precisa estar logado."))
        result = asyncio.run(submit_form(lambda: ("payload", []), persist))

        assert isinstance(result, RemoteFailed)
        assert result.message == "Você precisa estar logado."

    def test_unexpected_error_gets_generic_message(self):
        persist = Recorder(error=KeyError("boom"))
        result = asyncio.run(submit_form(lambda: ("payload", []), persist))

        assert isinstance(result, RemoteFailed)
        assert result.message == GENERIC_ERROR_MESSAGE

    def test_custom_generic_message(self):
        persist = Recorder(error=RuntimeError("boom"))
        result = asyncio.run(submit_form(
            lambda: ("payload", []), persist, generic_message="Erro ao excluir o registro."
        ))

        assert result.message == "Erro ao excluir o registro."

    def test_never_retries(self):
        persist = Recorder(error=StorageError("timeout"))
        asyncio.run(submit_form(lambda: ("payload", []), persist))
        assert len(persist.calls) == 1


class TestCredentials:
    """Sign-in and sign-up checks."""

    def test_valid_sign_in(self):
        payload, issues = validate_sign_in(" ana@example.com ", "segredo")
        assert issues == []
        assert payload.email == "ana@example.com"

    def test_invalid_email(self):
        payload, issues = validate_sign_in("ana@", "segredo")
        assert payload is None
        assert issues[0].message == "Email inválido"

    def test_short_password(self):
        _, issues = validate_sign_in("ana@example.com", "123")
        assert issues[0].field == "password"

    def test_long_password(self):
        _, issues = validate_sign_in("ana@example.com", "x" * 73)
        assert issues[0].field == "password"

    def test_sign_up_requires_name(self):
        payload, issues = validate_sign_up("ana@example.com", "segredo", "Al")
        assert payload is None
        assert issues[0].field == "full_name"

    def test_valid_sign_up(self):
        payload, issues = validate_sign_up("ana@example.com", "segredo", " Ana Souza ")
        assert issues == []
        assert payload.full_name == "Ana Souza"
