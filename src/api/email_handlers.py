"""
Email Handlers

Two POST endpoints that render an email and hand it to Resend:

- /send-confirmation-email is called by the auth service as a signed
  "send email" hook. The raw body is verified before anything else.
- /send-welcome-email takes a plain JSON body {email, name?}.

Responses:
    200 {"success": true, "data": <provider response>}
    401 {"error": {"code", "message"}}   bad signature or provider auth
    500 {"error": {"code", "message"}}   anything else, including missing
                                         configuration and unexpected errors

Other methods get 405 from the router. CORS allows any origin.

Delivery is at-most-once: no retry, no idempotency key.

Run with:
    uvicorn src.api.email_handlers:create_email_app --factory
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from src.audit import AuditLogger
from src.config import EmailHookSettings, get_settings
from src.services.email import (
    EmailError,
    EmailServiceInterface,
    ResendEmailService,
    WebhookConfigurationError,
    WebhookVerificationError,
    render_confirmation_email,
    render_welcome_email,
    verify,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# PAYLOADS
# =============================================================================

class HookUser(BaseModel):
    email: str = Field(..., min_length=3)


class HookEmailData(BaseModel):
    token: str
    token_hash: str
    redirect_to: str = ""
    email_action_type: str


class ConfirmationHook(BaseModel):
    """Body of the signed send-email hook."""
    user: HookUser
    email_data: HookEmailData


class WelcomeEmailRequest(BaseModel):
    email: str = Field(..., min_length=3)
    name: Optional[str] = None


# =============================================================================
# HELPERS
# =============================================================================

def error_response(status_code: int, code: Any, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def success_response(data: Any) -> JSONResponse:
    return JSONResponse(status_code=200, content={"success": True, "data": data})


class EmailHandlerDependencies:
    """
    Collaborators of the handlers, resolved on first use.

    Tests pass their own; a deployed app reads them from settings.
    """

    def __init__(
        self,
        email_service: Optional[EmailServiceInterface] = None,
        hook_settings: Optional[EmailHookSettings] = None,
        supabase_url: Optional[str] = None,
        app_url: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._email_service = email_service
        self._hook_settings = hook_settings
        self._supabase_url = supabase_url
        self._app_url = app_url
        self.audit_logger = audit_logger or AuditLogger()

    @property
    def email_service(self) -> EmailServiceInterface:
        if self._email_service is None:
            self._email_service = ResendEmailService()
        return self._email_service

    @property
    def hook_settings(self) -> EmailHookSettings:
        if self._hook_settings is None:
            self._hook_settings = get_settings().email_hook
        return self._hook_settings

    @property
    def supabase_url(self) -> str:
        if self._supabase_url is None:
            self._supabase_url = get_settings().supabase.url
        return self._supabase_url

    @property
    def app_url(self) -> str:
        if self._app_url is None:
            self._app_url = get_settings().app.app_url
        return self._app_url


# =============================================================================
# APP
# =============================================================================

def create_email_app(
    email_service: Optional[EmailServiceInterface] = None,
    hook_settings: Optional[EmailHookSettings] = None,
    supabase_url: Optional[str] = None,
    app_url: Optional[str] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> FastAPI:
    """Build the FastAPI app hosting both email handlers."""
    deps = EmailHandlerDependencies(
        email_service=email_service,
        hook_settings=hook_settings,
        supabase_url=supabase_url,
        app_url=app_url,
        audit_logger=audit_logger,
    )

    app = FastAPI(
        title="TRIAD3 Email Handlers",
        description="Confirmation and welcome emails",
        version="1.0.0",
    )
    app.state.deps = deps

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.post("/send-confirmation-email")
    async def send_confirmation_email(request: Request) -> JSONResponse:
        logger.info("confirmation_hook_received")
        try:
            payload = await request.body()
            try:
                secret = deps.hook_settings.secret
                supabase_url = deps.supabase_url
                email_service = deps.email_service
            except (ValidationError, WebhookConfigurationError) as e:
                return _configuration_error(e)

            try:
                event = verify(payload, dict(request.headers), secret)
            except WebhookVerificationError as e:
                logger.warning("confirmation_hook_rejected", reason=str(e))
                await deps.audit_logger.log_webhook_rejected(str(e))
                return error_response(401, "INVALID_SIGNATURE", str(e))
            except WebhookConfigurationError as e:
                return _configuration_error(e)

            try:
                hook = ConfirmationHook.model_validate(event)
            except ValidationError as e:
                return error_response(500, "INVALID_PAYLOAD", str(e))

            email = render_confirmation_email(
                supabase_url=supabase_url,
                token=hook.email_data.token,
                token_hash=hook.email_data.token_hash,
                email_action_type=hook.email_data.email_action_type,
                redirect_to=hook.email_data.redirect_to,
            )
            return await _send(
                deps, email_service, "confirmation", hook.user.email, email.subject, email.html
            )
        except Exception as e:
            return _unexpected_error("confirmation", e)

    @app.post("/send-welcome-email")
    async def send_welcome_email(request: Request) -> JSONResponse:
        try:
            try:
                body = WelcomeEmailRequest.model_validate_json(await request.body())
            except ValidationError as e:
                return error_response(500, "INVALID_PAYLOAD", str(e))

            try:
                app_url = deps.app_url
                email_service = deps.email_service
            except ValidationError as e:
                return _configuration_error(e)

            email = render_welcome_email(app_url=app_url, name=body.name)
            return await _send(deps, email_service, "welcome", body.email, email.subject, email.html)
        except Exception as e:
            return _unexpected_error("welcome", e)

    return app


def _configuration_error(error: Exception) -> JSONResponse:
    logger.error("email_handler_misconfigured", error=str(error))
    return error_response(500, "CONFIGURATION_ERROR", "Email handler is not configured")


def _unexpected_error(template: str, error: Exception) -> JSONResponse:
    logger.exception("email_handler_failed", template=template, error=str(error))
    return error_response(500, "UNKNOWN_ERROR", str(error) or error.__class__.__name__)


async def _send(
    deps: EmailHandlerDependencies,
    email_service: EmailServiceInterface,
    template: str,
    to: str,
    subject: str,
    html: str,
) -> JSONResponse:
    try:
        data = await email_service.send(to=to, subject=subject, html=html)
    except EmailError as e:
        logger.error("email_send_failed", template=template, error=str(e))
        await deps.audit_logger.log_email_failed(template, str(e), recipient=to)
        return error_response(e.status_code, e.code, str(e))

    await deps.audit_logger.log_email_sent(template, to, provider_id=data.get("id"))
    return success_response(data)
