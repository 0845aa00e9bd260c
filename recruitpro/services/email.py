import asyncio
import html
import re
import smtplib
import ssl
from email.message import EmailMessage
from typing import Any, Dict, Tuple

from recruitpro.models.settings import SmtpSettings
from recruitpro.utils.exceptions import ConfigurationError, NotificationFailure
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)

_WRAPPER = """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2563EB;">{heading} - {company}</h2>
{content}
  <p>Best regards,<br>The {company} Team</p>
</div>"""

TEMPLATES: Dict[str, Dict[str, str]] = {
    "application_confirmation": {
        "subject": "Application Confirmation - {position}",
        "heading": "Application Received",
        "content": (
            "  <p>Dear {name},</p>\n"
            "  <p>Thank you for your application for the <strong>{position}</strong> position.</p>\n"
            "  <p>We have received your application and will review it shortly. We'll get back to you "
            "with the next steps within 3-5 business days.</p>\n"
            "  <p>If you have any questions, please don't hesitate to contact us.</p>"
        ),
    },
    "interview_invitation": {
        "subject": "Interview Invitation - {position}",
        "heading": "Interview Invitation",
        "content": (
            "  <p>Dear {name},</p>\n"
            "  <p>Congratulations! We would like to invite you for an interview for the "
            "<strong>{position}</strong> position.</p>\n"
            "  <p><strong>Interview Details:</strong></p>\n"
            "  <ul>\n    <li>Date &amp; Time: {interview_date}</li>\n    <li>Type: {interview_type}</li>\n"
            "    <li>Location: {interview_location}</li>\n  </ul>\n"
            "  <p>Please confirm your availability by replying to this email.</p>"
        ),
    },
    "rejection": {
        "subject": "Your Application - {position}",
        "heading": "Application Update",
        "content": (
            "  <p>Dear {name},</p>\n"
            "  <p>Thank you for your interest in the <strong>{position}</strong> position. After careful "
            "consideration we have decided to move forward with other candidates.</p>\n"
            "  <p>We wish you every success in your search.</p>"
        ),
    },
    "custom": {
        "subject": "{subject}",
        "heading": "{heading}",
        "content": "  <p>Dear {name},</p>\n  <p>{message}</p>",
    },
}

TEMPLATE_DEFAULTS = {
    "heading": "Message",
    "interview_date": "to be confirmed",
    "interview_type": "video",
    "interview_location": "shared before the interview",
}


def render_template(template: str, context: Dict[str, Any], company: str) -> Tuple[str, str]:
    """Render (subject, html body). Raises NotificationFailure for bad input."""
    tpl = TEMPLATES.get(template)
    if tpl is None:
        raise NotificationFailure(f"Unknown email template '{template}'", template=template)

    values = {**TEMPLATE_DEFAULTS, **{k: html.escape(str(v)) for k, v in context.items()}}
    try:
        subject = html.unescape(tpl["subject"].format(**values))
        body = _WRAPPER.format(
            heading=tpl["heading"].format(**values),
            company=html.escape(company),
            content=tpl["content"].format(**values),
        )
    except KeyError as e:
        raise NotificationFailure(f"Template '{template}' is missing value {e}", template=template, cause=e)
    return subject, body


def html_to_text(body: str) -> str:
    text = re.sub(r"<(br|/p|/li|/h2)\s*/?>", "\n", body)
    text = re.sub(r"<[^>]+>", "", text)
    return html.unescape(re.sub(r"[ \t]+", " ", text)).strip()


class EmailSender:
    """Delivers messages through SMTP. Blocking I/O runs in the default executor."""

    def __init__(self, config: SmtpSettings):
        self.config = config

    def _send_sync(self, to_email: str, subject: str, body: str) -> None:
        cfg = self.config
        msg = EmailMessage()
        msg["From"] = cfg.mail_from
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(html_to_text(body))
        msg.add_alternative(body, subtype="html")

        with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout) as smtp:
            smtp.ehlo()
            if cfg.use_tls:
                smtp.starttls(context=ssl.create_default_context())
                smtp.ehlo()
            if cfg.user:
                smtp.login(cfg.user, cfg.password)
            smtp.send_message(msg)

    async def send(self, to_email: str, subject: str, body: str) -> None:
        if not self.config.configured:
            raise ConfigurationError("SMTP is not configured", config_key="SMTP_HOST")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._send_sync, to_email, subject, body)
        logger.debug(f"SMTP accepted message '{subject}'")
