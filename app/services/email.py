"""Outgoing email: message builders and SMTP delivery."""

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Protocol

from app.config import Settings
from app.exceptions import DeliveryError

logger = logging.getLogger("authkit")

VERIFICATION_SUBJECT = "Welcome to AuthKit! Please verify your email"
PASSWORD_RESET_SUBJECT = "AuthKit Password Reset Request"

VERIFICATION_TEXT = """Hello {name},

Thank you for registering. Please verify your email address by opening the link below:
{link}

This link expires in {ttl}. If you didn't create this account, you can ignore this email.

-- AuthKit ({tenant_id})
"""

PASSWORD_RESET_TEXT = """Hello {name},

You requested a password reset. Open the link below to choose a new password:
{link}

This link expires in {ttl}. If you didn't request this, you can safely ignore this email.

-- AuthKit ({tenant_id})
"""

EMAIL_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #f8fafc; margin: 0; padding: 20px;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 12px; padding: 40px; border: 1px solid #e2e8f0;">
        <h2 style="color: #1e293b; margin-top: 0;">{title}</h2>
        <p style="color: #475569; line-height: 1.6;">Hello <strong>{name}</strong>,</p>
        <p style="color: #475569; line-height: 1.6;">{intro}</p>
        <p style="margin: 30px 0; text-align: center;">
            <a href="{link}" style="display: inline-block; padding: 14px 28px; background-color: #2563eb; color: #ffffff !important; text-decoration: none; border-radius: 8px; font-weight: 600;">{button}</a>
        </p>
        <p style="color: #64748b; font-size: 14px;">Or copy and paste this link into your browser:</p>
        <p style="word-break: break-all; color: #2563eb; font-size: 14px;">{link}</p>
        <p style="color: #94a3b8; font-size: 13px;">This link expires in {ttl}. {ignore}</p>
        <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e2e8f0;">
            <span style="background: #f1f5f9; color: #475569; padding: 6px 12px; border-radius: 6px; font-size: 13px;">App: {tenant_id}</span>
        </div>
    </div>
</body>
</html>
"""


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    text: str
    html: str | None = None


class EmailSender(Protocol):
    def send(self, message: EmailMessage) -> None:
        """Deliver a message. Raises DeliveryError on failure."""
        ...


def _format_ttl(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


def verification_email(to: str, name: str, link: str, tenant_id: str, ttl_minutes: int) -> EmailMessage:
    ttl = _format_ttl(ttl_minutes)
    return EmailMessage(
        to=to,
        subject=VERIFICATION_SUBJECT,
        text=VERIFICATION_TEXT.format(name=name, link=link, ttl=ttl, tenant_id=tenant_id),
        html=EMAIL_HTML.format(
            title="Verify your email address",
            name=escape(name),
            intro="Thank you for registering. To activate your account, please verify your email address.",
            link=escape(link, quote=True),
            button="Verify My Email Address",
            ttl=ttl,
            ignore="If you didn't create this account, you can ignore this email.",
            tenant_id=escape(tenant_id),
        ),
    )


def password_reset_email(to: str, name: str, link: str, tenant_id: str, ttl_minutes: int) -> EmailMessage:
    ttl = _format_ttl(ttl_minutes)
    return EmailMessage(
        to=to,
        subject=PASSWORD_RESET_SUBJECT,
        text=PASSWORD_RESET_TEXT.format(name=name, link=link, ttl=ttl, tenant_id=tenant_id),
        html=EMAIL_HTML.format(
            title="Reset your password",
            name=escape(name),
            intro="We received a request to reset your password. Click the button below to choose a new one.",
            link=escape(link, quote=True),
            button="Reset Password",
            ttl=ttl,
            ignore="If you didn't request this, you can safely ignore this email.",
            tenant_id=escape(tenant_id),
        ),
    )


class SmtpEmailSender:
    """Delivers mail through the configured SMTP server."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _create_message(self, message: EmailMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = self._settings.SMTP_FROM
        msg["To"] = message.to

        msg.attach(MIMEText(message.text, "plain"))
        if message.html:
            msg.attach(MIMEText(message.html, "html"))

        return msg

    def send(self, message: EmailMessage) -> None:
        settings = self._settings
        if not settings.SMTP_HOST:
            raise DeliveryError("SMTP host not configured")

        mime = self._create_message(message)
        try:
            if settings.SMTP_STARTTLS:
                with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as server:
                    server.starttls(context=ssl.create_default_context())
                    if settings.SMTP_USER:
                        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                    server.send_message(mime)
            else:
                # Implicit TLS (port 465)
                with smtplib.SMTP_SSL(
                    settings.SMTP_HOST,
                    settings.SMTP_PORT,
                    timeout=settings.SMTP_TIMEOUT_SECONDS,
                    context=ssl.create_default_context(),
                ) as server:
                    if settings.SMTP_USER:
                        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                    server.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", message.to, e)
            raise DeliveryError() from e

        logger.info("Email sent to %s", message.to)


class LoggingEmailSender:
    """Stand-in used when SMTP is disabled: writes the message to the log."""

    def send(self, message: EmailMessage) -> None:
        logger.warning("SMTP disabled, email to %s not sent. Subject: %s\n%s", message.to, message.subject, message.text)


def build_email_sender(settings: Settings) -> EmailSender:
    if settings.SMTP_ENABLED:
        return SmtpEmailSender(settings)
    return LoggingEmailSender()
