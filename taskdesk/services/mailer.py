# taskdesk/services/mailer.py
"""
Отправка email через SMTP.

Если SMTP_HOST или SMTP_USER не заданы, письма не отправляются
(только пишется запись в лог).
"""

import logging
import smtplib
from email.message import EmailMessage

from taskdesk.core.settings import settings

logger = logging.getLogger("Taskdesk.Mailer")


def is_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USER)


def send_email(to: str, subject: str, html: str) -> bool:
    """
    Отправляет HTML-письмо. Возвращает True, если письмо ушло, и False,
    если SMTP не настроен. Ошибки транспорта пробрасываются вызывающему.
    """
    if not is_configured():
        logger.info(f"SMTP is not configured, skipping email to {to}: {subject}")
        return False

    message = EmailMessage()
    message["From"] = settings.SMTP_FROM or settings.SMTP_USER
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML-capable mail client.")
    message.add_alternative(html, subtype="html")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT) as smtp:
        smtp.starttls()
        smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        smtp.send_message(message)

    logger.info(f"Email sent to {to}: {subject}")
    return True
