# utils/sales_pipeline/notifier.py
"""
Notification senders.

EmailNotifier sends HTML mail over SMTP (STARTTLS) with the outbound
email configuration; LogNotifier only logs the message and is used when
no mail account is configured.

Both expose send(recipient, subject, body) -> (ok, message).
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import logging
from typing import Callable, Dict, Tuple

logger = logging.getLogger(__name__)


def body_to_html(body: str) -> str:
    """Plain-text line breaks become <br> in the HTML part."""
    return (body or '').replace('\r\n', '\n').replace('\n', '<br>')


class EmailNotifier:
    """
    SMTP email sender.

    Usage:
        notifier = EmailNotifier(config.get_email_config("outbound"))
        ok, message = notifier.send("rep@example.com", "Subject", body)
    """

    def __init__(self, email_config: Dict, smtp_factory: Callable = smtplib.SMTP):
        self.smtp_host = email_config.get("host") or "smtp.gmail.com"
        self.smtp_port = int(email_config.get("port") or 587)
        self.sender_email = email_config.get("sender")
        self.sender_password = email_config.get("password")
        self._smtp_factory = smtp_factory

    def send(self, recipient: str, subject: str, body: str) -> Tuple[bool, str]:
        """Send email using SMTP"""
        if not recipient:
            return False, "No recipient email available"
        if not self.sender_email or not self.sender_password:
            return False, "Email configuration missing"

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.sender_email
        msg['To'] = recipient
        msg.attach(MIMEText(body_to_html(body), 'html', 'utf-8'))

        try:
            with self._smtp_factory(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.sender_email, self.sender_password)
                server.sendmail(self.sender_email, [recipient], msg.as_string())
        except smtplib.SMTPAuthenticationError:
            logger.error("❌ Email authentication failed")
            return False, "Email authentication failed"
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Error sending email: {e}")
            return False, str(e)

        logger.info(f"📧 Email sent to {recipient}")
        return True, f"Email sent to {recipient}"


class LogNotifier:
    """Local-mode sender: the message goes to the log only."""

    def send(self, recipient: str, subject: str, body: str) -> Tuple[bool, str]:
        logger.info(f"[Local] Email to {recipient}")
        logger.info(f"Subject: {subject}")
        logger.debug(f"Body: {body}")
        return True, f"Report logged for {recipient} (email not configured)"


def create_notifier(cfg=None):
    """EmailNotifier when mail is configured and enabled, LogNotifier otherwise."""
    if cfg is None:
        from utils.config import config as cfg

    if cfg.is_email_configured() and cfg.is_feature_enabled("email_notifications"):
        return EmailNotifier(cfg.get_email_config("outbound"))

    logger.info("📭 Email not configured, notifications go to the log")
    return LogNotifier()


__all__ = ['EmailNotifier', 'LogNotifier', 'create_notifier', 'body_to_html']
