"""
Card payments.

Payment intents are created by the `create-payment-intent` Supabase edge
function (it holds the Stripe secret on the Supabase side). Cancelling an
intent during checkout rollback goes straight to Stripe and needs
STRIPE_SECRET_KEY on this service.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import stripe
from supabase_functions.errors import FunctionsError

from boutique.core.config import Settings
from boutique.core.errors import EdgeFunctionError, UpstreamDecodeError
from boutique.core.supabase_client import supabase_for_user

logger = logging.getLogger(__name__)


@dataclass
class PaymentIntent:
    """Result of creating a payment intent."""

    id: str
    client_secret: str | None = None


def to_minor_units(amount: float) -> int:
    """Euros -> cents, rounded half away from zero on the cent."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentClient:

    def __init__(self, settings: Settings):
        self.settings = settings

    def create_intent(
        self,
        access_token: str,
        amount: float,
        description: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        """
        Ask the edge function for a payment intent of `amount` (major units).

        Raises:
            EdgeFunctionError: the function failed or answered an error.
            UpstreamDecodeError: the answer has no paymentIntentId.
        """
        body = {
            "amount": to_minor_units(amount),
            "currency": self.settings.CURRENCY,
            "description": description,
        }
        if metadata:
            body["metadata"] = metadata

        client = supabase_for_user(access_token)
        try:
            data = client.functions.invoke(
                self.settings.PAYMENT_INTENT_FUNCTION,
                invoke_options={"body": body, "responseType": "json"},
            )
        except FunctionsError as exc:
            raise EdgeFunctionError(
                "Payment intent creation failed",
                status_code=getattr(exc, "status", None),
                details=exc.message,
            ) from exc

        if not isinstance(data, dict) or not data.get("paymentIntentId"):
            raise UpstreamDecodeError("Payment intent response missing paymentIntentId", details=data)

        logger.info("Payment intent created: %s", data["paymentIntentId"])
        return PaymentIntent(id=data["paymentIntentId"], client_secret=data.get("clientSecret"))

    def cancel_intent(self, intent_id: str) -> None:
        if not self.settings.STRIPE_SECRET_KEY:
            logger.warning(
                "STRIPE_SECRET_KEY not set; payment intent %s left for manual cancellation",
                intent_id,
            )
            return
        stripe.PaymentIntent.cancel(intent_id, api_key=self.settings.STRIPE_SECRET_KEY)
        logger.info("Payment intent cancelled: %s", intent_id)
