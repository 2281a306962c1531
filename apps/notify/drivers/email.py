"""Email notification driver."""

import logging
import smtplib
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage
from apps.notify.templating import build_context, render_template

logger = logging.getLogger(__name__)


class EmailNotifyDriver(BaseNotifyDriver):
    """Driver for sending incident emails over SMTP."""

    name = "email"

    PRIORITY_MAP = {
        "CRITICAL": "1",
        "HIGH": "2",
        "LOW": "3",
    }

    def validate_config(self, config: dict[str, Any]) -> bool:
        required_keys = {"smtp_host", "from_address", "to_addresses"}
        if not all(config.get(key) for key in required_keys):
            return False
        return all(isinstance(a, str) and "@" in a for a in config["to_addresses"])

    def subject_for(self, message: NotificationMessage) -> str:
        return f"[{message.action}] {message.application_name} - {message.title}"

    def _build_email(self, message: NotificationMessage, config: dict[str, Any]) -> MIMEMultipart:
        email = MIMEMultipart("alternative")

        email["Subject"] = self.subject_for(message)
        email["From"] = config["from_address"]
        email["To"] = ", ".join(config["to_addresses"])
        email["X-Priority"] = (
            "3" if message.is_resolution else self.PRIORITY_MAP.get(message.severity, "3")
        )

        context = build_context(message)
        email.attach(MIMEText(render_template("incident_email.txt.j2", context), "plain"))
        email.attach(MIMEText(render_template("incident_email.html.j2", context), "html"))
        return email

    def send(self, message: NotificationMessage, config: dict[str, Any]) -> dict[str, Any]:
        if not self.validate_config(config):
            return {
                "success": False,
                "error": "Invalid email configuration (smtp_host, from_address and a recipient required)",
            }

        smtp_host = config["smtp_host"]
        smtp_port = config.get("smtp_port", 587)
        use_tls = config.get("use_tls", True)
        use_ssl = config.get("use_ssl", False)
        username = config.get("username")
        password = config.get("password")
        timeout = config.get("timeout", 30)
        to_addresses = list(config["to_addresses"])

        try:
            email = self._build_email(message, config)
            message_id = str(uuid.uuid4())
            email["Message-ID"] = f"<{message_id}@{smtp_host}>"

            server: smtplib.SMTP | smtplib.SMTP_SSL
            if use_ssl:
                server = smtplib.SMTP_SSL(smtp_host, smtp_port, timeout=timeout)
            else:
                server = smtplib.SMTP(smtp_host, smtp_port, timeout=timeout)

            try:
                if use_tls and not use_ssl:
                    server.starttls()

                if username and password:
                    server.login(username, password)

                server.sendmail(config["from_address"], to_addresses, email.as_string())

                logger.info(
                    f"Email sent for incident {message.incident_id} to {', '.join(to_addresses)}"
                )

                return {
                    "success": True,
                    "message_id": message_id,
                    "metadata": {
                        "to": to_addresses,
                        "from": config["from_address"],
                        "subject": email["Subject"],
                    },
                }

            finally:
                try:
                    server.quit()
                except smtplib.SMTPException:
                    pass

        except smtplib.SMTPAuthenticationError as e:
            return self._handle_exception(e, "Email", "authenticate SMTP")
        except smtplib.SMTPException as e:
            return self._handle_exception(e, "Email", "send SMTP")
        except Exception as e:
            return self._handle_exception(e, "Email", "send email")
