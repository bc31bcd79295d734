import logging
from html import escape

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

from devspace.config import settings

logger = logging.getLogger(__name__)


def email_configured() -> bool:
    return bool(settings.BREVO_API_KEY and settings.ADMIN_EMAIL)


def send_email(to_email: str, subject: str, html_content: str, from_email: str = None, reply_to: str = None):
    """Send email using Brevo (SendInBlue)"""

    if not settings.BREVO_API_KEY:
        raise RuntimeError("Email delivery is not configured")

    configuration = sib_api_v3_sdk.Configuration()
    configuration.api_key['api-key'] = settings.BREVO_API_KEY

    api_instance = sib_api_v3_sdk.TransactionalEmailsApi(sib_api_v3_sdk.ApiClient(configuration))

    send_smtp_email = sib_api_v3_sdk.SendSmtpEmail(
        to=[{"email": to_email}],
        sender={"name": "Cosmic DevSpace", "email": from_email or settings.MAIL_FROM},
        reply_to={"email": reply_to} if reply_to else None,
        subject=subject,
        html_content=html_content
    )

    try:
        response = api_instance.send_transac_email(send_smtp_email)
        logger.info("Email sent via Brevo to %s", to_email)
        return {
            "success": True,
            "message_id": response.message_id
        }
    except ApiException as e:
        logger.error("Failed to send email to %s: %s", to_email, e)
        return {
            "success": False,
            "error": str(e)
        }


def notify_new_contact(contact) -> bool:
    """Forward a contact form submission to the site owner; returns whether it was sent"""
    if not email_configured():
        return False

    html_content = f"""
    <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2>New contact form submission</h2>
            <p><strong>From:</strong> {escape(contact.name)} &lt;{escape(contact.email)}&gt;</p>
            <p><strong>Subject:</strong> {escape(contact.subject)}</p>
            <div style="background: #f9fafb; border-left: 4px solid #667eea; padding: 16px;">
                {escape(contact.message)}
            </div>
        </body>
    </html>
    """

    result = send_email(
        to_email=settings.ADMIN_EMAIL,
        subject=f"[Contact] {contact.subject}",
        html_content=html_content,
        reply_to=contact.email
    )
    return result.get("success", False)
