"""
Email sending service using SMTP.

Senders raise on transport errors. Services call them through notify_safely,
which logs the failure and reports False, so a lost email cannot undo a
membership change.
"""
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging
from teamsync.core.config import (
    SMTP_HOST,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USE_SSL,
    SMTP_USERNAME,
    SMTP_PASSWORD,
    SMTP_FROM_EMAIL,
    SMTP_FROM_NAME,
    FRONTEND_BASE_URL,
)

logger = logging.getLogger(__name__)


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> bool:
    """
    Send an email via SMTP.

    Returns False when SMTP is not configured. Transport errors propagate;
    callers go through notify_safely, which logs and swallows them.
    """
    if not SMTP_HOST or not SMTP_USERNAME or not SMTP_PASSWORD:
        logger.error("SMTP configuration is missing. Cannot send email.")
        return False

    msg = MIMEMultipart('alternative')
    msg['Subject'] = subject
    msg['From'] = f"{SMTP_FROM_NAME} <{SMTP_FROM_EMAIL}>"
    msg['To'] = to_email
    if text_body:
        msg.attach(MIMEText(text_body, 'plain', 'utf-8'))
    msg.attach(MIMEText(html_body, 'html', 'utf-8'))

    smtp_class = smtplib.SMTP_SSL if SMTP_USE_SSL else smtplib.SMTP
    with smtp_class(SMTP_HOST, SMTP_PORT, timeout=10) as server:
        if SMTP_USE_TLS and not SMTP_USE_SSL:
            server.starttls()
        server.login(SMTP_USERNAME, SMTP_PASSWORD)
        server.send_message(msg)

    logger.info(f"Email sent successfully to {to_email}")
    return True


def _wrap_html(title: str, paragraphs: list[str], action_url: Optional[str] = None, action_label: str = "") -> str:
    body = "\n".join(f"        <p>{p}</p>" for p in paragraphs)
    button = ""
    if action_url:
        button = f"""
        <div style="text-align: center; margin: 30px 0;">
            <a href="{action_url}" style="display: inline-block; padding: 12px 28px; background-color: #2563eb; color: #fff; border-radius: 6px; text-decoration: none;">{action_label}</a>
        </div>"""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #2563eb;">{title}</h2>
{body}{button}
        <p>The TeamSync team</p>
    </div>
</body>
</html>"""


def invite_link(invite_id: int) -> str:
    return f"{FRONTEND_BASE_URL}/signup?invite={invite_id}"


def send_invite_email(
    email: str,
    inviter_name: str,
    organization_name: str,
    invite_id: int,
    role: str,
    team_name: Optional[str] = None,
) -> bool:
    """Invite an email address to join an organization as admin or member."""
    if role == "admin":
        subject = f"You're invited to manage teams at {organization_name}"
        what = f"join <b>{organization_name}</b> as an admin"
    else:
        subject = f"You're invited to join {organization_name}"
        what = f"join <b>{organization_name}</b>" + (f" in the <b>{team_name}</b> team" if team_name else "")

    link = invite_link(invite_id)
    html_body = _wrap_html(
        "You have been invited",
        [f"{inviter_name} has invited you to {what}.", "Use the button below to create your account."],
        action_url=link,
        action_label="Accept invitation",
    )
    text_body = (
        f"{inviter_name} has invited you to {what.replace('<b>', '').replace('</b>', '')}.\n\n"
        f"Create your account here: {link}\n"
    )
    return send_email(to_email=email, subject=subject, html_body=html_body, text_body=text_body)


def send_removed_email(
    email: str,
    display_name: str,
    organization_name: str,
    removed_by: str,
    team_name: Optional[str] = None,
) -> bool:
    """Tell a removed member or admin that their account was deleted."""
    where = f"the {team_name} team in {organization_name}" if team_name else organization_name
    subject = f"Your {organization_name} account was removed"
    html_body = _wrap_html(
        "Your account was removed",
        [f"Hello {display_name},", f"{removed_by} removed you from {where}. Your account has been deleted."],
    )
    text_body = f"Hello {display_name},\n\n{removed_by} removed you from {where}. Your account has been deleted.\n"
    return send_email(to_email=email, subject=subject, html_body=html_body, text_body=text_body)


def send_role_changed_email(
    email: str,
    display_name: str,
    organization_name: str,
    old_role: str,
    new_role: str,
    changed_by: str,
) -> bool:
    """Tell a user their role changed."""
    subject = f"Your role in {organization_name} changed"
    line = f"{changed_by} changed your role in {organization_name} from {old_role} to {new_role}."
    html_body = _wrap_html("Your role changed", [f"Hello {display_name},", line])
    text_body = f"Hello {display_name},\n\n{line}\n"
    return send_email(to_email=email, subject=subject, html_body=html_body, text_body=text_body)


class EmailNotifier:
    """Notification sender handed to services; tests swap in a recorder."""

    def send_invite(self, email, inviter_name, organization_name, invite_id, role, team_name=None) -> bool:
        return send_invite_email(email, inviter_name, organization_name, invite_id, role, team_name)

    def send_removed(self, email, display_name, organization_name, removed_by, team_name=None) -> bool:
        return send_removed_email(email, display_name, organization_name, removed_by, team_name)

    def send_role_changed(self, email, display_name, organization_name, old_role, new_role, changed_by) -> bool:
        return send_role_changed_email(email, display_name, organization_name, old_role, new_role, changed_by)


def get_notifier() -> EmailNotifier:
    """Dependency for FastAPI to get the notification sender."""
    return EmailNotifier()


def notify_safely(action: str, send, *args, **kwargs) -> bool:
    """Run a notifier call, logging instead of raising on any failure."""
    try:
        sent = bool(send(*args, **kwargs))
    except Exception as e:
        logger.error(f"Notification '{action}' failed: {e}", exc_info=True)
        return False
    if not sent:
        logger.warning(f"Notification '{action}' was not delivered")
    return sent
