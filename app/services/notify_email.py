# app/services/notify_email.py

import html
import logging
import smtplib
from datetime import datetime, timezone
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Iterable, Optional

import resend
from resend.exceptions import ResendError

from app.core.config import settings, admin_notification_list

log = logging.getLogger(__name__)

class NotificationError(Exception):
    """The mail transport is configured but refused the message."""

# ===================================================================
# BASE TEMPLATE
# ===================================================================

TPL_BASE = """
<table width="100%%" cellpadding="0" cellspacing="0" style="background:#eef2f7;padding:24px;">
  <tr><td align="center">

    <table width="600" cellpadding="0" cellspacing="0"
           style="background:#ffffff;border-radius:12px;
                  padding:24px;font-family:Arial,Helvetica,sans-serif;
                  color:#111827;border:1px solid #e5e7eb;">
      <!-- HEADER -->
      <tr>
        <td align="center" style="padding-bottom:16px;">
          <div style="font-size:20px;font-weight:700;">CitySense</div>
          <div style="margin-top:2px;font-size:12px;color:#6b7280;">
            Report it. Track it. Fix it.
          </div>
        </td>
      </tr>

      <!-- MAIN CONTENT -->
      <tr>
        <td style="font-size:14px;line-height:1.6;">
          %s
        </td>
      </tr>

      <!-- FOOTER -->
      <tr>
        <td style="padding-top:16px;font-size:11px;color:#6b7280;line-height:1.5;border-top:1px solid #e5e7eb;">
          This is an automated message from <strong>CitySense</strong>.
          <div style="margin-top:4px;">&copy; {YEAR} CitySense</div>
        </td>
      </tr>

    </table>
  </td></tr>
</table>
"""

def _render(content: str) -> str:
    year = str(datetime.now(timezone.utc).year)
    return TPL_BASE.replace("{YEAR}", year) % content

def _build_url(path: str) -> str:
    base = (settings.frontend_base_url or "").strip().rstrip("/")
    path = path.lstrip("/")
    if base:
        if not base.startswith("http://") and not base.startswith("https://"):
            base = f"https://{base}"
        return f"{base}/{path}"
    return f"/{path}"

def _when(dt: Optional[datetime]) -> str:
    dt = dt or datetime.now(timezone.utc)
    return dt.strftime("%d %b %Y, %H:%M UTC")

# ===================================================================
# Transport (SMTP or Resend)
# ===================================================================

class MailTransport:
    def __init__(self, provider: str = "smtp", from_address: Optional[str] = None,
                 from_name: Optional[str] = None, smtp_host: Optional[str] = None,
                 smtp_port: Optional[int] = 587, smtp_username: Optional[str] = None,
                 smtp_password: Optional[str] = None, smtp_use_ssl: bool = True,
                 resend_api_key: Optional[str] = None):
        self.provider = (provider or "smtp").lower()
        self.from_address = from_address or smtp_username
        self.from_name = from_name
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.smtp_use_ssl = smtp_use_ssl
        self.resend_api_key = resend_api_key

    @classmethod
    def from_settings(cls) -> "MailTransport":
        return cls(
            provider=settings.email_provider,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            smtp_use_ssl=settings.smtp_use_ssl,
            resend_api_key=settings.resend_api_key,
        )

    @property
    def is_configured(self) -> bool:
        if not self.from_address:
            return False
        if self.provider == "resend":
            return bool(self.resend_api_key)
        return bool(self.smtp_host and self.smtp_username and self.smtp_password)

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_address}>" if self.from_name else self.from_address

    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        """Send one message. Returns False when mail is not configured."""
        if not self.is_configured:
            log.info("Email service not configured; skipping %r to %s", subject, to_email)
            return False
        try:
            if self.provider == "resend":
                self._send_via_resend(to_email, subject, html_content)
            else:
                self._send_via_smtp(to_email, subject, html_content)
        except (smtplib.SMTPException, OSError, ResendError) as e:
            log.error("Error sending email to %s: %s", to_email, e)
            raise NotificationError(str(e)) from e
        log.info("Email sent to %s: %s", to_email, subject)
        return True

    def _send_via_smtp(self, to_email: str, subject: str, html_content: str):
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        smtp_cls = smtplib.SMTP_SSL if self.smtp_use_ssl else smtplib.SMTP
        with smtp_cls(self.smtp_host, self.smtp_port, timeout=15) as server:
            if not self.smtp_use_ssl:
                server.starttls()
            server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg)

    def _send_via_resend(self, to_email: str, subject: str, html_content: str):
        resend.api_key = self.resend_api_key
        resend.Emails.send({
            "from": self.sender,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        })

_transport = MailTransport.from_settings()

def get_mail_transport() -> MailTransport:
    return _transport

# ===================================================================
# 1) New issue reported (to admins)
# ===================================================================

def issue_reported_html(issue) -> tuple[str, str]:
    e = html.escape
    loc = issue.location
    address = f"<p><strong>Address:</strong> {e(loc.address)}</p>" if loc.address else ""
    image = f'<p><strong>Image:</strong> <a href="{e(issue.image_url)}">View image</a></p>' if issue.image_url else ""
    content = f"""
    <h2 style="margin:0 0 8px 0;">New issue reported</h2>
    <p><strong>Title:</strong> {e(issue.title)}</p>
    <p><strong>Category:</strong> {e(issue.category.value)}</p>
    <p><strong>Severity:</strong> {issue.severity}/5</p>
    <p><strong>Description:</strong> {e(issue.description)}</p>
    <p><strong>Location:</strong> {loc.lat}, {loc.lng}</p>
    {address}
    {image}
    <p><strong>Reported at:</strong> {_when(issue.timestamp)}</p>
    <p><a href="{_build_url(f'issues/{issue.id}')}">Review the issue</a> and take appropriate action.</p>
    """
    return f"New Issue Reported: {issue.title}", _render(content)

def send_issue_reported(transport: MailTransport, recipients: Iterable[str], issue) -> int:
    """Notify every recipient; returns how many messages were sent."""
    subject, body = issue_reported_html(issue)
    sent = 0
    for to_email in recipients:
        if transport.send(to_email, subject, body):
            sent += 1
    return sent

# ===================================================================
# 2) Issue resolved (to the reporter)
# ===================================================================

def issue_resolved_html(issue) -> tuple[str, str]:
    e = html.escape
    content = f"""
    <h2 style="margin:0 0 8px 0;">Your issue has been resolved</h2>
    <p>Hello,</p>
    <p>We're pleased to let you know that the issue you reported has been resolved.</p>
    <p><strong>Title:</strong> {e(issue.title)}</p>
    <p><strong>Category:</strong> {e(issue.category.value)}</p>
    <p><strong>Description:</strong> {e(issue.description)}</p>
    <p><strong>Location:</strong> {issue.location.lat}, {issue.location.lng}</p>
    <p><strong>Resolved at:</strong> {_when(issue.resolved_at)}</p>
    <p>Thank you for helping improve our community through CitySense!</p>
    """
    return f"Issue Resolved: {issue.title}", _render(content)

def send_issue_resolved(transport: MailTransport, to_email: str, issue) -> bool:
    subject, body = issue_resolved_html(issue)
    return transport.send(to_email, subject, body)

def admin_recipients(admin_emails: Iterable[Optional[str]]) -> list[str]:
    emails = sorted({e for e in admin_emails if e})
    return emails or admin_notification_list()
