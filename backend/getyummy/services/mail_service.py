"""
Get Yummy Backend - Mail Service
================================

What:  Sends transactional email (password reset links) over SMTP.
How:   Messages are built with `email.message.EmailMessage`, rendered from a
       Jinja2 template, and sent with aiosmtplib (implicit TLS or STARTTLS).
       Transient connection failures are retried with tenacity
       (exponential backoff + jitter); authentication and recipient errors
       are not retried.
Who:   AuthService.request_password_reset.

Failure semantics:
    Every failure surfaces as MailDeliveryError (HTTP 500). The caller does
    not swallow it, so the reset request fails and its token insert is
    rolled back with the request transaction.
"""

import logging
from email.message import EmailMessage
from email.utils import formataddr

import aiosmtplib
from jinja2 import Environment, PackageLoader, select_autoescape
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from getyummy.config import Settings
from getyummy.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)

# Errors worth another attempt: the server went away or never answered
TRANSIENT_SMTP_ERRORS = (
    aiosmtplib.SMTPServerDisconnected,
    aiosmtplib.SMTPConnectError,
    aiosmtplib.SMTPTimeoutError,
    ConnectionError,
)

_templates = Environment(
    loader=PackageLoader("getyummy", "templates"),
    autoescape=select_autoescape(["html"]),
)


def render_password_reset_email(user_name: str, user_email: str, reset_link: str, ttl_minutes: int) -> str:
    """Renders templates/password_reset.html; user-supplied values are HTML-escaped."""
    template = _templates.get_template("password_reset.html")
    return template.render(
        user_name=user_name,
        user_email=user_email,
        reset_link=reset_link,
        ttl_minutes=ttl_minutes,
    )


class MailService:
    """
    SMTP sender configured from Settings at app startup.

    Tests substitute any object exposing `async send(to, subject, html)`.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._send_with_retry = retry(
            stop=stop_after_attempt(settings.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=settings.retry_min_wait,
                max=settings.retry_max_wait,
                jitter=settings.retry_min_wait,
            ),
            retry=retry_if_exception_type(TRANSIENT_SMTP_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )(self._deliver)

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.settings.mail_from_name, self.settings.mail_from_email))
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")
        return message

    async def _deliver(self, message: EmailMessage) -> None:
        s = self.settings
        await aiosmtplib.send(
            message,
            hostname=s.smtp_host,
            port=s.smtp_port,
            username=s.smtp_user,
            password=s.smtp_password,
            use_tls=s.smtp_use_ssl,
            start_tls=not s.smtp_use_ssl,
            timeout=s.smtp_timeout,
        )

    async def send(self, to: str, subject: str, html: str) -> None:
        """
        Raises:
            MailDeliveryError: SMTP not configured, refused, or unreachable after retries
        """
        if not self.settings.smtp_configured:
            logger.error("Cannot send email: SMTP settings are incomplete")
            raise MailDeliveryError(context={"reason": "smtp_not_configured"})

        message = self.build_message(to, subject, html)
        try:
            await self._send_with_retry(message)
        except RetryError as e:
            last = e.last_attempt.exception()
            logger.error("SMTP delivery failed after %d attempts: %s",
                         self.settings.retry_max_attempts, last)
            raise MailDeliveryError(context={"reason": type(last).__name__})
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery failed: %s", e)
            raise MailDeliveryError(context={"reason": type(e).__name__})

        logger.info("Email '%s' handed to SMTP server", subject)
