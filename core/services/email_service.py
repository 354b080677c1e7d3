"""SMTP send client used by the delivery engine by default."""

import re
import smtplib
import socket
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Protocol

from django.conf import settings
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

import structlog

from core.exceptions import PermanentError, RetryableError
from core.schemas.delivery import SendResult

logger = structlog.get_logger(__name__)


class SendClient(Protocol):
    """Contract the delivery engine expects from a transactional send client.

    Implementations either return a SendResult or raise; raised exceptions
    and failed results are both classified by the engine.
    """

    def send(
        self,
        recipient_address: str,
        subject: str,
        message_type: str,
        payload: dict[str, Any],
        tags: dict[str, Any],
    ) -> SendResult:
        """Attempt delivery of one message."""
        ...


class EmailSendClient:
    """Send client delivering rendered templates over SMTP.

    The message body is rendered from ``emails/<message_type>.html`` with the
    payload as context. SMTP failures are translated into the engine's error
    taxonomy: refused recipients and bad credentials are permanent, dropped
    connections and 4xx replies are transient, other 5xx replies permanent.
    """

    TEMPLATE_PATH = "emails/{message_type}.html"

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize the client with SMTP configuration from settings.

        Args:
            timeout: Socket timeout for the SMTP connection in seconds.
        """
        self.smtp_host = settings.EMAIL_HOST
        self.smtp_port = settings.EMAIL_PORT
        self.smtp_user = settings.EMAIL_HOST_USER
        self.smtp_password = settings.EMAIL_HOST_PASSWORD
        self.use_tls = settings.EMAIL_USE_TLS
        self.from_email = settings.DEFAULT_FROM_EMAIL
        self.timeout = timeout

    def send(
        self,
        recipient_address: str,
        subject: str,
        message_type: str,
        payload: dict[str, Any],
        tags: dict[str, Any],
    ) -> SendResult:
        """Render and send one email.

        Args:
            recipient_address: Recipient email address
            subject: Email subject line
            message_type: Template identifier
            payload: Template context
            tags: Observability tags, sent as X-Tag-* headers

        Returns:
            SendResult with success=True.

        Raises:
            PermanentError: Invalid address, missing template, refused
                recipient, authentication failure or 5xx reply.
            RetryableError: Connection problems or 4xx reply.
        """
        if not self._is_valid_email(recipient_address):
            raise PermanentError(f"Invalid email address: {recipient_address}")

        try:
            html_content = render_to_string(
                self.TEMPLATE_PATH.format(message_type=message_type), payload or {}
            )
        except TemplateDoesNotExist as e:
            raise PermanentError(
                f"No template found for message type: {message_type}"
            ) from e

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = recipient_address
        for key, value in (tags or {}).items():
            msg[f"X-Tag-{key}"] = str(value)

        msg.attach(MIMEText(self._html_to_plain(html_content), "plain"))
        msg.attach(MIMEText(html_content, "html"))

        try:
            self._deliver(msg)
        except smtplib.SMTPRecipientsRefused as e:
            raise PermanentError(
                f"Invalid recipient address refused by server: {recipient_address}"
            ) from e
        except smtplib.SMTPAuthenticationError as e:
            raise PermanentError(
                f"SMTP authentication failed ({e.smtp_code})", status_code=401
            ) from e
        except smtplib.SMTPServerDisconnected as e:
            raise RetryableError(f"SMTP connection lost: {e}") from e
        except smtplib.SMTPResponseException as e:
            raise self._from_smtp_reply(e) from e
        except (smtplib.SMTPException, socket.gaierror, OSError) as e:
            raise RetryableError(f"SMTP connection failed: {e}") from e

        logger.info(
            "email_sent",
            recipient_address=recipient_address,
            subject=subject,
            message_type=message_type,
        )
        return SendResult(success=True)

    def _deliver(self, msg: MIMEMultipart) -> None:
        """Open an SMTP session and send a prepared message."""
        kwargs = {"timeout": self.timeout} if self.timeout else {}
        with smtplib.SMTP(self.smtp_host, self.smtp_port, **kwargs) as server:
            if self.use_tls:
                server.starttls()

            if self.smtp_user and self.smtp_password:
                server.login(self.smtp_user, self.smtp_password)

            server.send_message(msg)

    def _from_smtp_reply(self, error: smtplib.SMTPResponseException) -> Exception:
        """Map an SMTP reply code onto the HTTP-like taxonomy.

        SMTP 4xx replies are transient (reported as 503). 5xx replies are hard
        bounces (reported as 400).
        """
        detail = error.smtp_error
        if isinstance(detail, bytes):
            detail = detail.decode("utf-8", errors="replace")
        if 400 <= error.smtp_code < 500:
            return RetryableError(
                f"Temporary SMTP error {error.smtp_code}: {detail}", status_code=503
            )
        return PermanentError(
            f"Message bounced with SMTP error {error.smtp_code}: {detail}",
            status_code=400,
        )

    def _is_valid_email(self, email: str) -> bool:
        """Validate email address format.

        Args:
            email: Email address to validate

        Returns:
            True if email is valid, False otherwise
        """
        pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
        return bool(re.match(pattern, email))

    def _html_to_plain(self, html: str) -> str:
        """Convert HTML to plain text.

        Args:
            html: HTML content

        Returns:
            Plain text version of the HTML
        """
        text = re.sub(r"<[^>]+>", "", html)

        for entity, char in (
            ("&nbsp;", " "),
            ("&lt;", "<"),
            ("&gt;", ">"),
            ("&quot;", '"'),
            ("&amp;", "&"),
        ):
            text = text.replace(entity, char)

        text = re.sub(r"\n\s*\n", "\n\n", text)
        return text.strip()
