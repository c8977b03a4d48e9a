import logging
import smtplib
from email.message import EmailMessage

from .. import config

logger = logging.getLogger(__name__)


def send_password_reset_email(*, to_email: str, reset_url: str) -> None:
    """
    Sends the password reset link using SMTP (Gmail App Password recommended).

    Env vars:
      SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, SMTP_FROM, SMTP_TLS
    """
    host, port = config.SMTP_HOST, config.SMTP_PORT
    user, password = config.SMTP_USER, config.SMTP_PASS
    mail_from = config.SMTP_FROM or user

    if not host or not user or not password or not mail_from:
        err = "SMTP is not configured (missing SMTP_HOST/SMTP_USER/SMTP_PASS/SMTP_FROM)."
        logger.error(err)
        raise RuntimeError(err)

    msg = EmailMessage()
    msg["Subject"] = "Reset your password (Jobee - API)"
    msg["From"] = mail_from
    msg["To"] = to_email
    msg.set_content(f"Your password reset link is as follow:\n\n{reset_url}\n")

    logger.info("Sending password reset email to %s via %s:%s (TLS=%s)", to_email, host, port, config.SMTP_TLS)
    with smtplib.SMTP(host, port, timeout=15) as smtp:
        smtp.ehlo()
        if config.SMTP_TLS:
            smtp.starttls()
            smtp.ehlo()
        smtp.login(user, password)
        smtp.send_message(msg)
    logger.info("Password reset email sent to %s", to_email)
