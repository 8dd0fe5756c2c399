import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from urllib.parse import quote
from jinja2 import Environment, FileSystemLoader, select_autoescape
import secrets
import string
import os
from account_api.core.config import settings

logger = logging.getLogger(__name__)

template_dir = os.path.join(os.path.dirname(__file__), 'email_templates')
env = Environment(loader=FileSystemLoader(template_dir), autoescape=select_autoescape(["html"]))

AVATAR_URL = "https://api.dicebear.com/5.x/initials/svg?seed={seed}"

MAIL_KINDS = {
    "registration": ("Verify your account", "registration.html"),
    "otp": ("Your verification code", "otp.html"),
    "accountDeleted": ("Your account is scheduled for deletion", "account_deleted.html"),
}


def generate_otp(length=6):
    return ''.join(secrets.choice(string.digits) for i in range(length))


def initials_avatar_url(first_name: str, last_name: str) -> str:
    return AVATAR_URL.format(seed=quote(f"{first_name} {last_name}"))


def send_email(to_email: str, subject: str, template_name: str, context: dict):
    try:
        template = env.get_template(template_name)
        html_content = template.render(context)

        msg = MIMEMultipart()
        msg['From'] = settings.MAIL_FROM or settings.SMTP_USER
        msg['To'] = to_email
        msg['Subject'] = subject

        msg.attach(MIMEText(html_content, 'html'))

        with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=30) as server:
            server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(msg['From'], to_email, msg.as_string())
        logger.info("Sent %s mail to %s", template_name, to_email)
        return True
    except Exception:
        logger.exception("Failed to send %s mail to %s", template_name, to_email)
        return False


def send_mailer(to_email: str, otp: str | None, username: str, kind: str):
    """Fire-and-forget account mail; returns False instead of raising on failure."""
    if kind not in MAIL_KINDS:
        raise ValueError(f"Unknown mail kind: {kind}")
    subject, template_name = MAIL_KINDS[kind]
    return send_email(
        to_email=to_email,
        subject=subject,
        template_name=template_name,
        context={"otp": otp, "username": username}
    )
