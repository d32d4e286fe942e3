# Overview: Transactional email delivery through the Brevo HTTP API.

"""
Email delivery.

Delivery is best-effort: send_email never raises. Every failure (missing
API key, HTTP error, network error) comes back as DeliveryResult with
success=False and is logged, so callers can degrade to a warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from email.utils import parseaddr

import httpx
from flask import current_app

from ..config import AuthSettings
from ..models import OtpPurpose


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: str | None = None


OTP_SUBJECTS = {
    OtpPurpose.REGISTER: "Your Registration OTP - Inventory App",
    OtpPurpose.RESET: "Your Password Reset OTP - Inventory App",
}


def _sender(email_from: str) -> dict:
    name, address = parseaddr(email_from)
    sender = {"email": address or email_from}
    if name:
        sender["name"] = name
    return sender


def render_otp_html(code: str, purpose: OtpPurpose) -> str:
    action = "registration" if purpose == OtpPurpose.REGISTER else "password reset"
    return f"""
    <div style="font-family: Arial, sans-serif; font-size:14px; color:#333;">
      <p>Dear user,</p>
      <p>Your OTP for <strong>{action}</strong> is:</p>
      <p style="font-size: 24px; font-weight: bold; letter-spacing: 4px; margin: 12px 0;">
        {code}
      </p>
      <p>This OTP will expire in 10 minutes.</p>
      <p>If you did not request this, you can safely ignore this email.</p>
      <br/>
      <p>Regards,<br/>Inventory Management App</p>
    </div>
    """


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    settings: AuthSettings,
    transport: httpx.BaseTransport | None = None,
) -> DeliveryResult:
    """
    Send a single HTML email.

    Args:
        to_email: Recipient address
        subject: Subject line
        html_body: HTML content
        settings: Provider credentials and sender
        transport: Optional httpx transport (tests)

    Returns:
        DeliveryResult; never raises.
    """
    if not settings.brevo_api_key:
        current_app.logger.warning("BREVO_API_KEY is not set; email to %s not sent", to_email)
        return DeliveryResult(success=False, error="Missing BREVO_API_KEY")

    payload = {
        "sender": _sender(settings.email_from),
        "to": [{"email": to_email}],
        "subject": subject,
        "htmlContent": html_body,
    }
    headers = {
        "api-key": settings.brevo_api_key,
        "accept": "application/json",
        "content-type": "application/json",
    }

    try:
        with httpx.Client(timeout=settings.email_timeout, transport=transport) as client:
            response = client.post(settings.brevo_api_url, json=payload, headers=headers)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        current_app.logger.error("Failed to reach email provider: %s", e)
        return DeliveryResult(success=False, error=str(e))

    if response.status_code not in (200, 201, 202):
        current_app.logger.error(
            "Email provider returned %s: %s", response.status_code, response.text[:500]
        )
        return DeliveryResult(success=False, error=f"HTTP {response.status_code}")

    current_app.logger.info("Email sent to %s", to_email)
    return DeliveryResult(success=True)


def send_otp_email(to_email: str, code: str, purpose: OtpPurpose, settings: AuthSettings) -> DeliveryResult:
    purpose = OtpPurpose(purpose)
    return send_email(
        to_email,
        OTP_SUBJECTS[purpose],
        render_otp_html(code, purpose),
        settings,
    )
