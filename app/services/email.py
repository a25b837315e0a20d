from app.core.config import settings
from app.core.exceptions import EmailDeliveryError
from typing import Dict
from loguru import logger
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid

SEND_FAILED = "Failed to send email"


async def send_email_smtp(email_to: str, subject: str, body: str) -> Dict[str, str]:
    if not settings.SMTP_HOST:
        logger.error("SMTP host is not configured")
        raise EmailDeliveryError(SEND_FAILED)

    try:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        message["To"] = email_to
        message["Message-ID"] = make_msgid(domain=settings.EMAILS_FROM_EMAIL.split("@")[-1])

        html_part = MIMEText(body, "html")
        message.attach(html_part)

        await aiosmtplib.send(
            message,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            start_tls=settings.SMTP_TLS,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )
    except aiosmtplib.SMTPException as e:
        logger.error(f"Failed to send email to {email_to}: {str(e)}")
        raise EmailDeliveryError(SEND_FAILED)
    except OSError as e:
        logger.error(f"SMTP connection to {settings.SMTP_HOST} failed: {str(e)}")
        raise EmailDeliveryError(SEND_FAILED)

    logger.info(f"Email sent successfully to {email_to}")
    return {"id": message["Message-ID"], "message": "Email sent"}


def _render(title: str, intro: str, action: str, link: str, footnote: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif; background-color: #f5f5f5;">
        <table cellpadding="0" cellspacing="0" border="0" width="100%" style="background-color: #f5f5f5; padding: 20px 0;">
            <tr>
                <td align="center">
                    <table cellpadding="0" cellspacing="0" border="0" width="600" style="max-width: 600px; background-color: #ffffff; border-radius: 8px;">
                        <tr>
                            <td style="padding: 32px 30px; text-align: center; background-color: #0F766E; border-radius: 8px 8px 0 0;">
                                <h1 style="margin: 0; color: #ffffff; font-size: 26px; font-weight: 600;">Munjiz</h1>
                            </td>
                        </tr>
                        <tr>
                            <td style="padding: 40px 30px; text-align: center;">
                                <h2 style="margin: 0 0 20px 0; color: #1F2937; font-size: 22px;">{title}</h2>
                                <p style="margin: 0 0 30px 0; color: #4B5563; font-size: 16px; line-height: 24px;">{intro}</p>
                                <a href="{link}" style="display: inline-block; padding: 14px 28px; background-color: #0F766E; color: #ffffff; text-decoration: none; border-radius: 6px; font-weight: 600;">{action}</a>
                                <p style="margin: 30px 0 0 0; color: #6B7280; font-size: 13px; line-height: 20px; word-break: break-all;">{link}</p>
                                <p style="margin: 20px 0 0 0; color: #9CA3AF; font-size: 13px;">{footnote}</p>
                            </td>
                        </tr>
                    </table>
                </td>
            </tr>
        </table>
    </body>
    </html>
    """


def verification_link(token: str) -> str:
    return f"{settings.APP_BASE_URL}/new-verification?token={token}"


def password_reset_link(token: str) -> str:
    return f"{settings.APP_BASE_URL}/auth/reset-password?token={token}"


async def send_verification_email(email_to: str, token: str) -> Dict[str, str]:
    """
    Sends the confirmation link. Outside production a delivery failure is not
    fatal: the link is written to the log so the account can still be verified.
    """
    link = verification_link(token)
    body = _render(
        title="Confirm your email",
        intro="Thanks for signing up! Click the button below to verify your email address.",
        action="Verify email",
        link=link,
        footnote="The link expires in one hour. If you did not create an account, ignore this email.",
    )

    try:
        return await send_email_smtp(email_to, "Confirm your email - Munjiz", body)
    except EmailDeliveryError:
        if settings.is_production:
            raise EmailDeliveryError()
        logger.warning(
            "\n" + "=" * 60
            + f"\nEmail delivery failed, verification link for {email_to}:\n{link}\n"
            + "=" * 60
        )
        return {"id": "dev-mode-fallback", "message": "Verification link logged to console"}


async def send_password_reset_email(email_to: str, token: str) -> Dict[str, str]:
    body = _render(
        title="Reset your password",
        intro="We received a request to reset your password.",
        action="Reset password",
        link=password_reset_link(token),
        footnote="If you did not request a reset, you can safely ignore this email.",
    )
    return await send_email_smtp(email_to, "Reset your password - Munjiz", body)
