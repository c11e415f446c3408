"""
Email Templates

Plain HTML with inline styles, since most mail clients drop <style>
blocks. Every interpolated value goes through html.escape.
"""

from dataclasses import dataclass
from html import escape
from typing import Optional
from urllib.parse import urlencode

CONFIRMATION_SUBJECT = "Confirme seu cadastro na TRIAD3"
WELCOME_SUBJECT = "Bem-vindo à TRIAD3! 🎉"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def confirmation_url(
    supabase_url: str,
    token_hash: str,
    email_action_type: str,
    redirect_to: str,
) -> str:
    """Link that confirms the address through the auth service."""
    query = urlencode({
        "token": token_hash,
        "type": email_action_type,
        "redirect_to": redirect_to,
    })
    return f"{supabase_url.rstrip('/')}/auth/v1/verify?{query}"


_CONFIRMATION_HTML = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{subject}</title>
  </head>
  <body style="margin: 0; padding: 0; background-color: #f6f9fc; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Ubuntu, sans-serif;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px 0 48px; background-color: #ffffff; border-radius: 8px;">
      <div style="padding: 32px 0; text-align: center;">
        <span style="display: inline-block; padding: 16px; border-radius: 12px; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: #ffffff; font-size: 24px; font-weight: bold;">T3</span>
      </div>
      <h1 style="color: #1a1a1a; font-size: 32px; margin: 40px 0; padding: 0 40px; text-align: center;">Bem-vindo à TRIAD3!</h1>
      <p style="color: #484848; font-size: 16px; line-height: 26px; padding: 0 40px;">
        Olá! Obrigado por se cadastrar na TRIAD3, sua plataforma completa de gestão financeira pessoal.
      </p>
      <p style="color: #484848; font-size: 16px; line-height: 26px; padding: 0 40px;">
        Para começar a usar sua conta e ter acesso a todas as funcionalidades, você precisa confirmar seu email.
      </p>
      <div style="padding: 27px 0; text-align: center;">
        <a href="{url}" target="_blank" style="display: inline-block; padding: 16px 40px; background-color: #667eea; border-radius: 8px; color: #ffffff; font-size: 16px; font-weight: 600; text-decoration: none;">Confirmar meu email</a>
      </div>
      <p style="color: #484848; font-size: 16px; padding: 0 40px;">Ou copie e cole este link no seu navegador:</p>
      <p style="color: #667eea; font-size: 14px; padding: 0 40px; word-break: break-all;">{url}</p>
      <hr style="border-color: #e6ebf1; margin: 32px 40px;">
      <p style="color: #484848; font-size: 16px; padding: 0 40px;">Você também pode usar este código de confirmação:</p>
      <code style="display: inline-block; margin: 0 40px; padding: 16px 24px; background-color: #f4f4f4; border: 1px solid #e0e0e0; border-radius: 8px; font-size: 20px; letter-spacing: 2px;">{token}</code>
      <hr style="border-color: #e6ebf1; margin: 32px 40px;">
      <p style="color: #8898aa; font-size: 14px; padding: 0 40px;">Se você não criou uma conta na TRIAD3, pode ignorar este email com segurança.</p>
      <p style="color: #8898aa; font-size: 14px; padding: 0 40px;">Este link de confirmação é válido por 24 horas.</p>
      <div style="padding: 24px 40px; text-align: center; background-color: #f8f9fa; border-top: 1px solid #e6ebf1;">
        <p style="margin: 4px 0; color: #484848; font-size: 14px;"><strong>TRIAD3</strong> - Gestão Financeira Pessoal Inteligente</p>
        <p style="margin: 4px 0; color: #484848; font-size: 14px;">Patrimônio • Investimentos • Planejamento Fiscal</p>
        <p style="margin-top: 16px; color: #8898aa; font-size: 12px;">Este é um email automático, por favor não responda.</p>
      </div>
    </div>
  </body>
</html>
"""


def render_confirmation_email(
    supabase_url: str,
    token: str,
    token_hash: str,
    email_action_type: str,
    redirect_to: str,
) -> RenderedEmail:
    url = confirmation_url(supabase_url, token_hash, email_action_type, redirect_to)
    html = _CONFIRMATION_HTML.format(
        subject=escape(CONFIRMATION_SUBJECT),
        url=escape(url, quote=True),
        token=escape(token),
    )
    return RenderedEmail(subject=CONFIRMATION_SUBJECT, html=html)


_WELCOME_HTML = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Bem-vindo à TRIAD3</title>
  </head>
  <body style="margin: 0; padding: 0; background-color: #f5f5f5; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;">
    <table role="presentation" style="width: 100%; border-collapse: collapse;">
      <tr>
        <td align="center" style="padding: 40px 0;">
          <table role="presentation" style="width: 600px; max-width: 100%; border-collapse: collapse; background-color: #ffffff; border-radius: 12px;">
            <tr>
              <td style="padding: 40px 40px 20px; text-align: center; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); border-radius: 12px 12px 0 0;">
                <h1 style="margin: 0; color: #ffffff; font-size: 28px;">Bem-vindo à TRIAD3! 🎉</h1>
              </td>
            </tr>
            <tr>
              <td style="padding: 40px;">
                <p style="margin: 0 0 20px; color: #333333; font-size: 16px; line-height: 1.6;">{greeting}</p>
                <p style="margin: 0 0 20px; color: #333333; font-size: 16px; line-height: 1.6;">
                  Estamos muito felizes em ter você conosco! Sua conta foi criada com sucesso e você já pode começar a usar todos os recursos da plataforma TRIAD3.
                </p>
                <p style="margin: 0 0 30px; color: #333333; font-size: 16px; line-height: 1.6;">
                  Comece a organizar suas finanças, investimentos e muito mais de forma inteligente e prática.
                </p>
                <table role="presentation" style="margin: 0 auto;">
                  <tr>
                    <td style="border-radius: 8px; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);">
                      <a href="{app_url}" style="display: inline-block; padding: 14px 32px; color: #ffffff; text-decoration: none; font-size: 16px; font-weight: 600;">Acessar Plataforma</a>
                    </td>
                  </tr>
                </table>
                <p style="margin: 30px 0 0; color: #666666; font-size: 14px; line-height: 1.6;">Se você não criou esta conta, por favor ignore este email.</p>
              </td>
            </tr>
            <tr>
              <td style="padding: 20px 40px; background-color: #f9f9f9; border-radius: 0 0 12px 12px; text-align: center;">
                <p style="margin: 0; color: #999999; font-size: 12px;">TRIAD3 © {year} - Gestão Financeira Inteligente</p>
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>
"""


def welcome_greeting(name: Optional[str]) -> str:
    name = (name or "").strip()
    return f"Olá {name}!" if name else "Olá!"


def render_welcome_email(app_url: str, name: Optional[str] = None, year: int = 2025) -> RenderedEmail:
    html = _WELCOME_HTML.format(
        greeting=escape(welcome_greeting(name)),
        app_url=escape(app_url, quote=True),
        year=year,
    )
    return RenderedEmail(subject=WELCOME_SUBJECT, html=html)
