"""Transactional email delivery over SMTP."""

import smtplib
from email.message import EmailMessage

from throwback.config import settings
from throwback.models.user import User
from throwback.services.logging_service import app_logger, app_metrics


def send_email(to_address: str, subject: str, html_body: str, text_body: str) -> bool:
    """
    Send an email through the configured SMTP server.

    Returns:
        True if the message was handed to the server, False otherwise
    """
    if not settings.EMAIL_ENABLED:
        app_logger.info("Email delivery disabled, message not sent", to=to_address, subject=subject)
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.EMAIL_FROM
    message["To"] = to_address
    message.set_content(text_body)
    message.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        app_metrics.increment_email(sent=False)
        app_logger.error("Failed to send email", to=to_address, subject=subject, error=str(e))
        return False

    app_metrics.increment_email(sent=True)
    app_logger.info("Email sent", to=to_address, subject=subject)
    return True


def send_verification_email(user: User, token: str) -> bool:
    link = f"{settings.API_BASE_URL}/api/auth/verify/{user.id}/{token}"
    subject = "Verify your ThrowBack account"
    text_body = (
        f"Hello {user.first_name},\n\n"
        f"Welcome to ThrowBack! Confirm your email address by opening this link:\n{link}\n\n"
        f"The link expires in {settings.VERIFICATION_TOKEN_EXPIRE_DAYS} days."
    )
    html_body = (
        f"<p>Hello {user.first_name},</p>"
        f"<p>Welcome to ThrowBack! Confirm your email address:</p>"
        f'<p><a href="{link}">Verify my email</a></p>'
        f"<p>The link expires in {settings.VERIFICATION_TOKEN_EXPIRE_DAYS} days.</p>"
    )
    return send_email(user.email, subject, html_body, text_body)


def send_password_reset_email(user: User, token: str) -> bool:
    link = f"{settings.API_BASE_URL}/api/auth/verify-reset/{token}"
    subject = "Reset your ThrowBack password"
    text_body = (
        f"Hello {user.first_name},\n\n"
        f"Open this link to choose a new password:\n{link}\n\n"
        "If you did not request a reset you can ignore this email."
    )
    html_body = (
        f"<p>Hello {user.first_name},</p>"
        f'<p><a href="{link}">Choose a new password</a></p>'
        "<p>If you did not request a reset you can ignore this email.</p>"
    )
    return send_email(user.email, subject, html_body, text_body)
