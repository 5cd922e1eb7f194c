"""
Stripe Connect Service
Express accounts for salons, destination charges, checkout sessions
and webhook signature verification
"""
import json
import logging
from typing import Any, Optional

import stripe

from ..config import (
    FRONTEND_URL,
    STRIPE_APPLICATION_FEE_PERCENT,
    STRIPE_DEFAULT_CURRENCY,
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    STRIPE_WEBHOOK_SECRET_THIN,
)
from ..errors import AppError

logger = logging.getLogger(__name__)

stripe.api_key = STRIPE_SECRET_KEY

# Merchant category code for beauty shops
SALON_MCC = "7230"
WEBHOOK_TOLERANCE_SECONDS = 300


def is_stripe_enabled() -> bool:
    return bool(stripe.api_key)


def _check_stripe_enabled():
    if not is_stripe_enabled():
        raise AppError("Stripe not configured. Add STRIPE_SECRET_KEY to environment.", 503, "STRIPE_NOT_CONFIGURED")


def to_plain(obj: Any) -> Any:
    """Convert a StripeObject tree into plain JSON-serializable data"""
    if obj is None:
        return None
    return json.loads(str(obj))


def application_fee_for(amount_cents: int) -> int:
    return int(round(amount_cents * STRIPE_APPLICATION_FEE_PERCENT / 100))


# ============================================================================
# CONNECT ACCOUNTS
# ============================================================================


def create_connect_account(
    *,
    email: str,
    business_name: str,
    country: Optional[str],
    salon_id: str,
    owner_id: str,
    website: Optional[str] = None,
    business_type: str = "individual",
):
    """Create an Express account for a salon"""
    _check_stripe_enabled()

    if not country:
        raise AppError("Country is required for Stripe account creation", 400, "MISSING_COUNTRY")

    business_profile = {
        "name": business_name,
        "product_description": "Beauty and salon services",
        "mcc": SALON_MCC,
    }
    if website:
        business_profile["url"] = website

    try:
        account = stripe.Account.create(
            type="express",
            country=country.upper(),
            business_type=business_type,
            email=email,
            business_profile=business_profile,
            capabilities={
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            metadata={"salon_id": salon_id, "owner_id": owner_id},
        )
        logger.info(f"✅ Stripe Connect account created: {account.id} for salon {salon_id}")
        return account
    except stripe.StripeError as e:
        logger.error(f"❌ Stripe Connect account creation error: {str(e)}")
        if "responsibilities of managing losses" in str(e):
            raise AppError(
                "Stripe Connect platform not properly configured. Complete the platform profile in the Stripe dashboard.",
                503,
                "STRIPE_CONNECT_NOT_CONFIGURED",
            ) from e
        raise AppError(
            f"Stripe account creation failed: {e.user_message or str(e)}", 500, "STRIPE_ACCOUNT_CREATION_FAILED"
        ) from e


def create_account_link(account_id: str, return_url: Optional[str] = None, refresh_url: Optional[str] = None) -> str:
    """Create an onboarding link and return its URL"""
    _check_stripe_enabled()
    try:
        link = stripe.AccountLink.create(
            account=account_id,
            return_url=return_url or f"{FRONTEND_URL}/salon/onboarding/success",
            refresh_url=refresh_url or f"{FRONTEND_URL}/salon/onboarding/retry",
            type="account_onboarding",
        )
        return link.url
    except stripe.StripeError as e:
        logger.error(f"❌ Account link creation failed for {account_id}: {str(e)}")
        raise AppError(f"Account link creation failed: {str(e)}", 500, "STRIPE_LINK_CREATION_FAILED") from e


def get_account_status(account_id: str) -> dict:
    _check_stripe_enabled()
    try:
        account = stripe.Account.retrieve(account_id)
    except stripe.StripeError as e:
        logger.error(f"❌ Failed to retrieve Stripe account {account_id}: {str(e)}")
        raise AppError(
            f"Failed to retrieve account status: {str(e)}", 500, "STRIPE_ACCOUNT_RETRIEVAL_FAILED"
        ) from e

    return {
        "id": account.id,
        "details_submitted": bool(account.details_submitted),
        "charges_enabled": bool(account.charges_enabled),
        "payouts_enabled": bool(account.payouts_enabled),
        "country": account.country,
        "default_currency": account.default_currency,
        "requirements": to_plain(account.requirements),
        "capabilities": to_plain(account.capabilities),
    }


def create_dashboard_link(account_id: str) -> str:
    """Express dashboard login link"""
    _check_stripe_enabled()
    try:
        return stripe.Account.create_login_link(account_id).url
    except stripe.StripeError as e:
        logger.error(f"❌ Dashboard link creation failed for {account_id}: {str(e)}")
        raise AppError(f"Dashboard link creation failed: {str(e)}", 500, "STRIPE_DASHBOARD_LINK_FAILED") from e


# ============================================================================
# PAYMENTS
# ============================================================================


def create_payment_intent(
    *, amount_cents: int, currency: str, destination_account: str, metadata: dict[str, str]
):
    """Destination charge: funds transfer to the salon minus the platform fee"""
    _check_stripe_enabled()
    try:
        intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=currency.lower(),
            automatic_payment_methods={"enabled": True},
            application_fee_amount=application_fee_for(amount_cents),
            transfer_data={"destination": destination_account},
            metadata=metadata,
        )
        logger.info(f"💳 PaymentIntent created: {intent.id} ({amount_cents} {currency})")
        return intent
    except stripe.StripeError as e:
        logger.error(f"❌ PaymentIntent creation failed: {str(e)}")
        raise AppError(f"Payment creation failed: {str(e)}", 500, "STRIPE_PAYMENT_FAILED") from e


def retrieve_payment_intent(payment_intent_id: str):
    _check_stripe_enabled()
    try:
        return stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        logger.error(f"❌ Failed to retrieve PaymentIntent {payment_intent_id}: {str(e)}")
        raise AppError(f"Failed to retrieve payment: {str(e)}", 404, "PAYMENT_NOT_FOUND") from e


def resolve_payment_method(payment_intent_id: Optional[str]) -> str:
    """
    Best effort lookup of how a payment was made (apple_pay, ideal, card...).
    Falls back to "card" when Stripe is unavailable.
    """
    if not payment_intent_id or not is_stripe_enabled():
        return "card"
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id, expand=["payment_method"])
        payment_method = intent.payment_method
        if not payment_method or isinstance(payment_method, str):
            return "card"
        if payment_method.type == "card":
            wallet = getattr(payment_method.card, "wallet", None)
            if wallet and getattr(wallet, "type", None):
                return wallet.type
        return payment_method.type or "card"
    except stripe.StripeError as e:
        logger.warning(f"⚠️ Could not resolve payment method for {payment_intent_id}: {str(e)}")
        return "card"


def create_checkout_session(*, booking_id: str, amount: float, connected_account_id: str, description: str):
    """Hosted checkout for an existing booking, paid to the salon's account"""
    _check_stripe_enabled()
    amount_cents = int(round(amount * 100))
    try:
        return stripe.checkout.Session.create(
            payment_method_types=["card", "ideal"],
            mode="payment",
            line_items=[
                {
                    "price_data": {
                        "currency": STRIPE_DEFAULT_CURRENCY,
                        "product_data": {"name": "Booking Payment", "description": description},
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            success_url=f"{FRONTEND_URL}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{FRONTEND_URL}/payment-cancel",
            payment_intent_data={
                "application_fee_amount": application_fee_for(amount_cents),
                "transfer_data": {"destination": connected_account_id},
                "metadata": {"booking_id": booking_id},
            },
            metadata={"booking_id": booking_id},
        )
    except stripe.StripeError as e:
        logger.error(f"❌ Checkout session creation failed for booking {booking_id}: {str(e)}")
        raise AppError(f"Checkout session creation failed: {str(e)}", 500, "STRIPE_CHECKOUT_FAILED") from e


# ============================================================================
# WEBHOOKS
# ============================================================================


def get_webhook_secrets() -> list[str]:
    return [secret for secret in (STRIPE_WEBHOOK_SECRET, STRIPE_WEBHOOK_SECRET_THIN) if secret]


def construct_webhook_event(payload: bytes, signature: Optional[str]) -> dict:
    """
    Verify the Stripe-Signature header against each configured signing secret
    in turn and return the parsed event.

    Raises:
        AppError(400) when no secret is configured or none verifies
    """
    secrets = get_webhook_secrets()
    if not secrets:
        logger.error("❌ No webhook secrets configured")
        raise AppError("Webhook secret not configured", 400, "WEBHOOK_SECRET_NOT_CONFIGURED")
    if not signature:
        raise AppError("Missing Stripe-Signature header", 400, "WEBHOOK_SIGNATURE_INVALID")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AppError("Invalid webhook payload", 400, "WEBHOOK_PAYLOAD_INVALID") from e
    last_error = None
    for secret in secrets:
        try:
            stripe.WebhookSignature.verify_header(body, signature, secret, WEBHOOK_TOLERANCE_SECONDS)
            break
        except stripe.SignatureVerificationError as e:
            last_error = e
    else:
        logger.error(f"❌ Webhook signature verification failed with all secrets: {last_error}")
        raise AppError(f"Webhook Error: {last_error}", 400, "WEBHOOK_SIGNATURE_INVALID")

    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise AppError("Invalid webhook payload", 400, "WEBHOOK_PAYLOAD_INVALID") from e
