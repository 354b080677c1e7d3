"""Tests for EmailSendClient."""

import smtplib
import socket
from unittest.mock import MagicMock, patch

from django.template import TemplateDoesNotExist
from django.test import TestCase

from core.exceptions import PermanentError, RetryableError
from core.services.email_service import EmailSendClient


class TestEmailSendClient(TestCase):
    """Test suite for EmailSendClient."""

    def setUp(self):
        """Set up test fixtures."""
        self.client = EmailSendClient(timeout=5)

    def send(self, **overrides):
        kwargs = {
            "recipient_address": "test@example.com",
            "subject": "Reset your password",
            "message_type": "password_reset",
            "payload": {"reset_url": "https://example.com/reset"},
            "tags": {"retry_attempt": 2},
        }
        kwargs.update(overrides)
        return self.client.send(**kwargs)

    @patch("core.services.email_service.smtplib.SMTP")
    def test_send_success(self, mock_smtp_class):
        """Test that a sent email returns a successful SendResult."""
        mock_smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = mock_smtp

        result = self.send()

        self.assertIs(result.success, True)
        mock_smtp.send_message.assert_called_once()
        message = mock_smtp.send_message.call_args[0][0]
        self.assertEqual(message["To"], "test@example.com")
        self.assertEqual(message["X-Tag-retry_attempt"], "2")
        self.assertIn("https://example.com/reset", message.as_string())

    @patch("core.services.email_service.smtplib.SMTP")
    def test_send_passes_timeout(self, mock_smtp_class):
        """Test that the socket timeout reaches smtplib."""
        self.send()

        self.assertEqual(mock_smtp_class.call_args.kwargs["timeout"], 5)

    @patch("core.services.email_service.smtplib.SMTP")
    def test_send_uses_tls_and_authenticates(self, mock_smtp_class):
        """Test STARTTLS and login when credentials are configured."""
        mock_smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = mock_smtp
        self.client.smtp_user = "mailer"
        self.client.smtp_password = "secret"
        self.client.use_tls = True

        self.send()

        mock_smtp.starttls.assert_called_once()
        mock_smtp.login.assert_called_once_with("mailer", "secret")

    def test_invalid_address_is_permanent(self):
        """Test that a malformed address fails before connecting."""
        with self.assertRaisesRegex(PermanentError, "Invalid email address"):
            self.send(recipient_address="invalid-email")

    def test_missing_template_is_permanent(self):
        """Test that an unknown message type cannot be retried into success."""
        with patch(
            "core.services.email_service.render_to_string",
            side_effect=TemplateDoesNotExist("emails/unknown.html"),
        ), self.assertRaisesRegex(PermanentError, "No template found"):
            self.send(message_type="unknown")

    def assert_smtp_error_raises(self, smtp_error, expected):
        with patch("core.services.email_service.smtplib.SMTP") as mock_smtp_class:
            mock_smtp_class.return_value.__enter__.return_value.send_message.side_effect = (
                smtp_error
            )
            with self.assertRaises(expected) as ctx:
                self.send()
        return ctx.exception

    def test_refused_recipient_is_permanent(self):
        """Test SMTPRecipientsRefused."""
        error = self.assert_smtp_error_raises(
            smtplib.SMTPRecipientsRefused({"test@example.com": (550, b"unknown")}),
            PermanentError,
        )
        self.assertIn("Invalid recipient", str(error))

    def test_authentication_failure_is_permanent(self):
        """Test SMTPAuthenticationError."""
        error = self.assert_smtp_error_raises(
            smtplib.SMTPAuthenticationError(535, b"bad credentials"), PermanentError
        )
        self.assertEqual(error.status_code, 401)

    def test_disconnect_is_retryable(self):
        """Test SMTPServerDisconnected."""
        self.assert_smtp_error_raises(
            smtplib.SMTPServerDisconnected("Connection unexpectedly closed"),
            RetryableError,
        )

    def test_4xx_reply_is_retryable(self):
        """Test that SMTP 4xx replies map to a retryable 503."""
        error = self.assert_smtp_error_raises(
            smtplib.SMTPResponseException(451, b"Try again later"), RetryableError
        )
        self.assertEqual(error.status_code, 503)
        self.assertIn("Try again later", str(error))

    def test_5xx_reply_is_permanent(self):
        """Test that SMTP 5xx replies map to a permanent 400."""
        error = self.assert_smtp_error_raises(
            smtplib.SMTPResponseException(554, b"Message rejected"), PermanentError
        )
        self.assertEqual(error.status_code, 400)

    def test_network_error_is_retryable(self):
        """Test DNS and socket failures."""
        self.assert_smtp_error_raises(
            socket.gaierror("Name or service not known"), RetryableError
        )

    def test_html_to_plain_conversion(self):
        """Test HTML to plain text conversion."""
        html = "<h1>Title</h1><p>Paragraph with <strong>bold</strong> text.</p>"
        plain = self.client._html_to_plain(html)

        self.assertIn("Title", plain)
        self.assertIn("Paragraph with bold text.", plain)
        self.assertNotIn("<p>", plain)

    def test_html_entities_decoded(self):
        """Test HTML entities are decoded in plain text."""
        plain = self.client._html_to_plain("<p>&lt;tag&gt; &amp; &quot;q&quot;</p>")

        self.assertIn("<tag>", plain)
        self.assertIn('"q"', plain)
