"""Templated email notifications.

``NotificationDispatcher.send`` never raises. Each call returns a
``SideEffectResult`` and failures are logged, so a broken mail server cannot
fail the operation that triggered the email.
"""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Protocol

from consultations.core.results import SideEffectResult
from consultations.services.email_templates import OPERATOR_TEMPLATES, TEMPLATES

logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    def send(self, to: str, subject: str, html_content: str) -> None: ...


class SmtpTransport:
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, html_content: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [to], msg.as_string())


class NotificationDispatcher:
    def __init__(self, transport: EmailTransport | None, operator_email: str = "", signature: str = "") -> None:
        self.transport = transport
        self.operator_email = operator_email
        self.signature = signature

    def _recipient(self, template_key: str, user) -> str | None:
        if template_key in OPERATOR_TEMPLATES:
            return self.operator_email or None
        return getattr(user, "email", None)

    def send(self, template_key: str, appointment, user, extra: dict[str, Any] | None = None) -> SideEffectResult:
        name = f"email:{template_key}"
        template = TEMPLATES.get(template_key)
        if template is None:
            logger.error("Unknown email template %s", template_key)
            return SideEffectResult.failure(name, f"unknown template {template_key}")

        if self.transport is None:
            logger.info("Email transport not configured; %s not sent", template_key)
            return SideEffectResult.skipped(name, "transport not configured")

        if template_key not in OPERATOR_TEMPLATES and getattr(user, "email_notifications", True) is False:
            logger.info("User %s opted out of email; %s not sent", getattr(user, "id", None), template_key)
            return SideEffectResult.skipped(name, "recipient opted out")

        recipient = self._recipient(template_key, user)
        if not recipient:
            logger.warning("No recipient for %s", template_key)
            return SideEffectResult.skipped(name, "no recipient")

        try:
            subject, html_content = template(appointment, user, extra or {}, self.signature)
            self.transport.send(recipient, subject, html_content)
        except Exception as exc:
            logger.exception("Failed to send %s email to %s", template_key, recipient)
            return SideEffectResult.failure(name, str(exc))

        logger.info("Sent %s email to %s", template_key, recipient)
        return SideEffectResult.success(name)
