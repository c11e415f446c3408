"""
Form Submission

Every record form does the same three things: validate, persist once,
report. submit_form does them once for all forms and returns a tagged
result the UI switches on.

- Validation runs first, synchronously. A form with errors never
  reaches the network.
- The persistence call runs exactly once. There is no retry; the user
  can press the button again.
- Collaborator errors carry their own message to the user. Anything
  else gets a generic message and a logged traceback.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

import structlog

from src.models.validation import ValidationIssue
from src.services.auth import AuthError
from src.services.billing import BillingError
from src.services.storage import StorageError

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

GENERIC_ERROR_MESSAGE = "Ocorreu um erro ao salvar. Tente novamente."


@dataclass(frozen=True)
class Ok(Generic[R]):
    value: R
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationFailed:
    issues: tuple[ValidationIssue, ...]

    @property
    def messages(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "error"]


@dataclass(frozen=True)
class RemoteFailed:
    message: str
    error: Optional[Exception] = None


FormResult = Union[Ok[R], ValidationFailed, RemoteFailed]

# Returns the validated payload (None when invalid) and every issue found
Validate = Callable[[], tuple[Optional[T], list[ValidationIssue]]]
Persist = Callable[[T], Awaitable[R]]


async def submit_form(
    validate: Validate[T],
    persist: Persist[T, R],
    generic_message: str = GENERIC_ERROR_MESSAGE,
) -> FormResult[R]:
    """
    Validate, then persist once.

    Returns:
        Ok with the persisted value, ValidationFailed with the issues,
        or RemoteFailed with a message for the user
    """
    payload, issues = validate()
    errors = [i for i in issues if i.severity == "error"]
    if errors or payload is None:
        return ValidationFailed(issues=tuple(errors or issues))

    try:
        value = await persist(payload)
    except (StorageError, AuthError, BillingError) as e:
        logger.warning("form_persist_failed", error=str(e), error_type=type(e).__name__)
        return RemoteFailed(message=str(e) or generic_message, error=e)
    except Exception as e:
        logger.exception("form_persist_crashed", error_type=type(e).__name__)
        return RemoteFailed(message=generic_message, error=e)

    warnings = tuple(i.message for i in issues if i.severity == "warning")
    return Ok(value=value, warnings=warnings)
