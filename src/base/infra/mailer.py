import html
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from starlette.concurrency import run_in_threadpool

from src.base.config.settings import MailSettings

logger = logging.getLogger(__name__)


def _redact_email(email: str) -> str:
    """Keep addresses out of the logs beyond the first two characters."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class Mailer:
    """
    Transactional email over SMTP with implicit TLS.

    ``send`` never raises: failures are logged and reported through the return
    value, so a mail problem cannot change the outcome of the request that
    triggered it. When no transport is configured the message is only logged.
    """

    def __init__(self, settings: MailSettings):
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.smtp_host and self.settings.from_email)

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        return await run_in_threadpool(self.send_sync, to, subject, html_body)

    def send_sync(self, to: str, subject: str, html_body: str) -> bool:
        if not self.is_configured:
            logger.info("Mail transport not configured; skipping '%s' to %s", subject, _redact_email(to))
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.settings.from_name} <{self.settings.from_email}>"
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        try:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(
                self.settings.smtp_host, self.settings.smtp_port, context=context, timeout=30
            ) as server:
                if self.settings.smtp_user and self.settings.smtp_password:
                    server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.sendmail(self.settings.from_email, to, msg.as_string())
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(
                "Failed to send '%s' to %s: %s: %s",
                subject,
                _redact_email(to),
                type(e).__name__,
                e,
            )
            return False

        logger.info("Sent '%s' to %s", subject, _redact_email(to))
        return True


def welcome_email(username: str) -> tuple[str, str]:
    """Subject and HTML body for the post-registration greeting."""
    subject = "Welcome to Media Catalog"
    body = (
        "<html><body>"
        f"<h2>Welcome, {html.escape(username)}!</h2>"
        "<p>Your account is ready. Start adding movies and series to your lists.</p>"
        "</body></html>"
    )
    return subject, body
