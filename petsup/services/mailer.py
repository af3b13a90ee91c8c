"""SMTP mail delivery."""
import logging
import smtplib
from collections import namedtuple
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Iterable, Optional

from petsup.config import MailSettings
from petsup.errors import MailDeliveryError

logger = logging.getLogger(__name__)

Attachment = namedtuple("Attachment", ["filename", "content", "mime_subtype"])


class Mailer:
    """Sends HTML mail with optional attachments through the configured SMTP server."""

    def __init__(self, mail_settings: MailSettings):
        self.settings = mail_settings

    @property
    def configured(self) -> bool:
        return self.settings.configured

    def build_message(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Optional[Iterable[Attachment]] = None
    ) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = formataddr((self.settings.from_name, self.settings.from_address))
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html", "utf-8"))

        for attachment in attachments or ():
            part = MIMEApplication(attachment.content, _subtype=attachment.mime_subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)
        return msg

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Optional[Iterable[Attachment]] = None
    ) -> bool:
        """
        Send one message. Returns False when SMTP is not configured and
        raises MailDeliveryError when the server refuses or is unreachable.
        """
        if not self.configured:
            logger.warning("SMTP not configured (user/password missing). Email to %s NOT sent.", to)
            return False

        msg = self.build_message(to, subject, html, attachments)
        logger.info(
            "Sending email to=%s subject='%s' host=%s:%s",
            to, subject, self.settings.host, self.settings.port
        )
        try:
            # 465 is implicit TLS; anything else negotiates STARTTLS when offered
            if self.settings.port == 465:
                with smtplib.SMTP_SSL(self.settings.host, self.settings.port, timeout=30) as server:
                    server.login(self.settings.user, self.settings.password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(self.settings.host, self.settings.port, timeout=30) as server:
                    server.ehlo()
                    if server.has_extn("STARTTLS"):
                        server.starttls()
                        server.ehlo()
                    server.login(self.settings.user, self.settings.password)
                    server.send_message(msg)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP auth error for %s: %s", self.settings.user, e)
            raise MailDeliveryError("Email delivery failed", {"to": to}) from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP error sending to %s: %s", to, e)
            raise MailDeliveryError("Email delivery failed", {"to": to}) from e

        logger.info("Email '%s' sent to %s", subject, to)
        return True
