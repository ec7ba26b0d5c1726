"""
Message templates for QA Forum notifications.

Each template function returns (subject, html_body, text_body). SMS delivery
uses only the text body.
"""

from __future__ import annotations

from html import escape

# Color constants
BG_PAGE = "#F4F6F8"
BG_CARD = "#FFFFFF"
ACCENT = "#F48024"
TEXT_PRIMARY = "#232629"
TEXT_SECONDARY = "#6A737C"
BORDER = "#D6D9DC"

APP_NAME = "QA Forum"


def _base_layout(content: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Arial, Helvetica, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%">
        <tr>
            <td align="center" style="padding: 32px 16px;">
                <table role="presentation" width="560" style="max-width: 560px; width: 100%; background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 8px;">
                    <tr>
                        <td style="padding: 32px;">
                            <div style="font-size: 20px; font-weight: 700; color: {ACCENT}; margin-bottom: 24px;">{APP_NAME}</div>
                            {content}
                        </td>
                    </tr>
                </table>
                <p style="color: {TEXT_SECONDARY}; font-size: 12px; margin-top: 16px;">
                    If you didn't expect this message, you can safely ignore it.
                </p>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _code_block(code: str) -> str:
    return (
        f'<p style="font-size: 32px; letter-spacing: 8px; font-weight: 700; '
        f'color: {TEXT_PRIMARY}; text-align: center; margin: 24px 0;">{escape(code)}</p>'
    )


def login_otp(name: str | None, code: str, ttl_minutes: int = 10) -> tuple[str, str, str]:
    """One-time code required to finish a login from a browser that needs a second factor."""
    who = escape(name or "there")
    subject = f"Your {APP_NAME} login code"
    content = f"""\
<p style="color: {TEXT_PRIMARY}; font-size: 16px;">Hi {who},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 15px;">Use this code to finish signing in:</p>
{_code_block(code)}
<p style="color: {TEXT_SECONDARY}; font-size: 13px;">The code expires in {ttl_minutes} minutes.</p>"""
    text_body = f"Your {APP_NAME} login code is {code}. It expires in {ttl_minutes} minutes."
    return subject, _base_layout(content), text_body


def language_otp(name: str | None, code: str, language: str, ttl_minutes: int = 10) -> tuple[str, str, str]:
    """Code confirming a change of preferred language."""
    who = escape(name or "there")
    subject = "Confirm your language change"
    content = f"""\
<p style="color: {TEXT_PRIMARY}; font-size: 16px;">Hi {who},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 15px;">
    Enter this code to switch your language to <strong>{escape(language)}</strong>:
</p>
{_code_block(code)}
<p style="color: {TEXT_SECONDARY}; font-size: 13px;">The code expires in {ttl_minutes} minutes.</p>"""
    text_body = (
        f"Your {APP_NAME} verification code is {code}. "
        f"Use it to change your language to {language}. It expires in {ttl_minutes} minutes."
    )
    return subject, _base_layout(content), text_body


def new_password(name: str | None, password: str) -> tuple[str, str, str]:
    """Generated password delivered after a reset."""
    who = escape(name or "there")
    subject = "Your new password"
    content = f"""\
<p style="color: {TEXT_PRIMARY}; font-size: 16px;">Hi {who},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 15px;">Your password has been reset. Your new password is:</p>
{_code_block(password)}
<p style="color: {TEXT_SECONDARY}; font-size: 13px;">Sign in and change it from your profile settings.</p>"""
    text_body = f"Your {APP_NAME} password has been reset. Your new password is: {password}"
    return subject, _base_layout(content), text_body


def subscription_confirmed(
    name: str | None,
    plan_name: str,
    amount: int,
    currency: str,
    end_date: str,
    max_questions_per_day: int,
) -> tuple[str, str, str]:
    """Receipt sent when a payment is verified and the plan becomes active."""
    who = escape(name or "there")
    limit = "Unlimited" if max_questions_per_day >= 999 else str(max_questions_per_day)
    subject = f"{APP_NAME} {plan_name} plan activated"
    content = f"""\
<p style="color: {TEXT_PRIMARY}; font-size: 16px;">Hi {who},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 15px;">Thanks for subscribing. Your plan is now active.</p>
<table role="presentation" style="width: 100%; font-size: 14px; color: {TEXT_PRIMARY}; margin: 16px 0;">
    <tr><td>Plan</td><td align="right"><strong>{escape(plan_name)}</strong></td></tr>
    <tr><td>Amount</td><td align="right">{amount} {escape(currency)}</td></tr>
    <tr><td>Questions per day</td><td align="right">{limit}</td></tr>
    <tr><td>Valid until</td><td align="right">{escape(end_date)}</td></tr>
</table>"""
    text_body = (
        f"Hi {name or 'there'},\n\n"
        f"Your {plan_name} plan is active.\n"
        f"Amount: {amount} {currency}\n"
        f"Questions per day: {limit}\n"
        f"Valid until: {end_date}\n\n"
        f"-- The {APP_NAME} Team"
    )
    return subject, _base_layout(content), text_body


def password_reset_request(name: str | None, reset_token: str, reset_url: str, ttl_minutes: int = 60) -> tuple[str, str, str]:
    """Link (and raw token) for completing a password reset."""
    who = escape(name or "there")
    subject = "Reset your password"
    content = f"""\
<p style="color: {TEXT_PRIMARY}; font-size: 16px;">Hi {who},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 15px;">
    We received a request to reset your password. Open the link below and a new password will be sent to you.
</p>
<p style="text-align: center; margin: 24px 0;">
    <a href="{escape(reset_url)}" style="background-color: {ACCENT}; color: #FFFFFF; padding: 12px 28px; border-radius: 6px; text-decoration: none; font-weight: 600;">Reset password</a>
</p>
<p style="color: {TEXT_SECONDARY}; font-size: 13px;">The link expires in {ttl_minutes} minutes.</p>"""
    text_body = (
        f"Reset your {APP_NAME} password: {reset_url} "
        f"(reset code {reset_token}, expires in {ttl_minutes} minutes)."
    )
    return subject, _base_layout(content), text_body
