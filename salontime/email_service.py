"""
Email Service using Resend
Transactional notifications for salon owners and clients
"""

import logging
from typing import Optional, Union

import resend

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import new_review_template, payment_link_template, salon_owner_welcome_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    html_content: str,
    from_address: Optional[str] = None,
) -> Optional[dict]:
    """
    Send an email through Resend.

    Returns the Resend response, or None when email is not configured.
    Notifications are best effort, so delivery failures are logged, not raised.
    """
    if not RESEND_API_KEY:
        logger.warning(f"⚠️ RESEND_API_KEY missing - skipping email '{subject}'")
        return None

    recipients = [to] if isinstance(to, str) else to
    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent: {subject}")
        return response
    except Exception as e:
        logger.error(f"❌ Failed to send email '{subject}': {str(e)}")
        return None


async def send_salon_owner_welcome(to: str, owner_name: str, business_name: str) -> Optional[dict]:
    html = salon_owner_welcome_template(owner_name or "there", business_name, f"{FRONTEND_URL}/salon/dashboard")
    return await send_email(to=to, subject=f"Welcome to SalonTime, {business_name}!", html_content=html)


async def send_new_review_notification(
    to: str, business_name: str, client_name: str, rating: int, comment: Optional[str]
) -> Optional[dict]:
    html = new_review_template(
        business_name, client_name or "A client", rating, comment or "", f"{FRONTEND_URL}/salon/reviews"
    )
    return await send_email(to=to, subject=f"New {rating}-star review for {business_name}", html_content=html)


async def send_payment_link(
    to: str, business_name: str, service_name: str, amount: float, currency: str, payment_url: str
) -> Optional[dict]:
    html = payment_link_template(business_name, service_name, f"{amount:.2f} {currency.upper()}", payment_url)
    return await send_email(to=to, subject=f"Payment request from {business_name}", html_content=html)
