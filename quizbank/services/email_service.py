"""Share notification emails over SMTP.

Sending is disabled when ``smtp_host`` is empty (development and tests).
``smtplib`` is blocking, so delivery runs in a worker thread. Failures are
logged and reported as ``False``; they never abort the share operation.
"""

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Optional

from ..config import settings

logger = logging.getLogger(__name__)

PERMISSION_LABELS = {
    "view": "view",
    "edit": "view and edit",
    "admin": "view, edit and share",
}


class EmailService:
    """Sends quiz share notifications."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        use_tls: Optional[bool] = None,
    ):
        self.host = settings.smtp_host if host is None else host
        self.port = port or settings.smtp_port
        self.user = settings.smtp_user if user is None else user
        self.password = settings.smtp_password if password is None else password
        self.sender = sender or settings.smtp_sender
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def build_share_message(
        self,
        recipient: str,
        sender_name: str,
        quiz_title: str,
        share_url: str,
        permission: str,
        message: str = "",
    ) -> MIMEText:
        """Compose the notification body for a shared quiz."""
        lines = [
            f"{sender_name} shared the quiz \"{quiz_title}\" with you.",
            f"You can {PERMISSION_LABELS.get(permission, permission)} it.",
        ]
        if message:
            lines += ["", "Message:", message]
        lines += ["", f"Open the quiz: {share_url}"]

        msg = MIMEText("\n".join(lines))
        msg["Subject"] = f"{sender_name} shared \"{quiz_title}\" with you"
        msg["From"] = self.sender
        msg["To"] = recipient
        return msg

    def _send(self, recipient: str, msg: MIMEText) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.sendmail(self.sender, [recipient], msg.as_string())

    async def send_share_notification(
        self,
        recipient: str,
        sender_name: str,
        quiz_title: str,
        share_url: str,
        permission: str,
        message: str = "",
    ) -> bool:
        """
        Notify a recipient that a quiz was shared with them.

        Returns:
            True if the email was handed to the SMTP server, False if sending
            is disabled or failed.
        """
        if not self.enabled:
            logger.debug(f"SMTP disabled, skipping share notification to {recipient}")
            return False

        msg = self.build_share_message(recipient, sender_name, quiz_title, share_url, permission, message)
        try:
            await asyncio.to_thread(self._send, recipient, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Share notification to {recipient} failed: {e}")
            return False

        logger.info(f"Share notification sent to {recipient}")
        return True


# Global instance
email_service = EmailService()
