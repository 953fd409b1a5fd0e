"""
Email Service

Sends signup verification and password reset codes. Without SMTP
settings the code is written to the log instead (development mode).
"""

import asyncio
import random
import smtplib
from email.message import EmailMessage
from typing import Optional

import structlog

from unisocial.config.i18n import normalize_language
from unisocial.config.settings import Settings, get_settings
from unisocial.utils.error_handling import ExternalServiceError


class EmailDeliveryError(ExternalServiceError):
    service_name = "SMTP"


SUBJECTS = {
    "signup": {
        "ko": "Unisocial 이메일 인증",
        "en": "Unisocial Email Verification",
        "zh": "Unisocial 邮箱验证",
        "ja": "Unisocial メール認証",
    },
    "password_reset": {
        "ko": "Unisocial 비밀번호 재설정",
        "en": "Unisocial Password Reset",
        "zh": "Unisocial 密码重置",
        "ja": "Unisocial パスワード再設定",
    },
}

BODIES = {
    "ko": "인증 코드: <b style=\"font-size:28px;letter-spacing:4px\">{code}</b><br><br>이 코드는 10분 후 만료됩니다.",
    "en": "Your verification code: <b style=\"font-size:28px;letter-spacing:4px\">{code}</b><br><br>This code expires in 10 minutes.",
    "zh": "验证码: <b style=\"font-size:28px;letter-spacing:4px\">{code}</b><br><br>此验证码将在10分钟后过期。",
    "ja": "認証コード: <b style=\"font-size:28px;letter-spacing:4px\">{code}</b><br><br>このコードは10分後に期限切れになります。",
}

TEMPLATE = """
<div style="font-family:sans-serif;max-width:400px;margin:0 auto;padding:30px;background:#f8f9fa;border-radius:12px">
  <h2 style="margin:0 0 8px">Unisocial</h2>
  <p style="color:#666;font-size:13px;margin:0 0 24px">13 Platforms, One Dashboard</p>
  <div style="background:#fff;padding:24px;border-radius:8px;text-align:center">{body}</div>
</div>"""


def generate_code() -> str:
    """Six-digit numeric code."""
    return str(random.SystemRandom().randint(100000, 999999))


class EmailService:
    """Delivers one-time codes by SMTP or, in development, to the log."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = structlog.get_logger(__name__)

    @property
    def configured(self) -> bool:
        return self.settings.smtp_configured

    def build_message(self, email: str, code: str, lang: str, purpose: str = "signup") -> EmailMessage:
        lang = normalize_language(lang)
        subjects = SUBJECTS.get(purpose, SUBJECTS["signup"])

        message = EmailMessage()
        message["Subject"] = subjects[lang]
        message["From"] = f"Unisocial <{self.settings.smtp_user}>"
        message["To"] = email
        message.set_content(f"{code}")
        message.add_alternative(TEMPLATE.format(body=BODIES[lang].format(code=code)), subtype="html")
        return message

    async def send_code(self, email: str, code: str, lang: str, purpose: str = "signup") -> bool:
        """
        Send a verification or reset code.

        Returns:
            True when an email went out, False in development mode

        Raises:
            EmailDeliveryError: If the SMTP server rejects the message
        """
        if not self.configured:
            self.logger.warning(
                "SMTP not configured, logging code instead",
                email=email,
                code=code,
                purpose=purpose,
            )
            return False

        message = self.build_message(email, code, lang, purpose)
        try:
            await asyncio.to_thread(self._send_smtp, message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error("Failed to send email", email=email, error=str(e))
            raise EmailDeliveryError(str(e), original_error=e) from e

        self.logger.info("Email sent", email=email, purpose=purpose)
        return True

    def _send_smtp(self, message: EmailMessage) -> None:
        settings = self.settings
        if settings.smtp_secure:
            server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=30)
        else:
            server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30)
        with server:
            if not settings.smtp_secure:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_pass)
            server.send_message(message)
