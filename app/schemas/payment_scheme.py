from typing import Any, Mapping, Optional
from pydantic import BaseModel, ConfigDict


class PaymentConfirmation(BaseModel):
    """A payment-completed signal whose origin has already been authenticated."""

    # payment ids arrive as ints from some publishers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    identity: Optional[str] = None
    source_reference: Optional[str] = None
    amount_context: Optional[dict[str, Any]] = None

    @classmethod
    def from_checkout_session(cls, session: Mapping[str, Any]) -> "PaymentConfirmation":
        """Build from a Stripe checkout.session object; metadata.email wins over customer_email."""
        metadata = session.get("metadata") or {}
        return cls(
            identity=metadata.get("email") or session.get("customer_email"),
            source_reference=session.get("id"),
            amount_context={
                "amount_total": session.get("amount_total"),
                "currency": session.get("currency"),
            },
        )

    @classmethod
    def from_pubsub_payload(cls, payload: Mapping[str, Any]) -> "PaymentConfirmation":
        return cls(
            identity=payload.get("email"),
            source_reference=payload.get("reference") or payload.get("payment_id"),
            amount_context={
                "amount": payload.get("amount"),
                "currency": payload.get("currency"),
            },
        )
