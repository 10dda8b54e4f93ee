"""
Stripe webhook. The signature is checked before anything else; only verified
events reach the payment handler.
"""
import asyncio
import json
import logging

import stripe
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core import config
from app.db.session import get_db
from app.schemas.payment_scheme import PaymentConfirmation
from app.services.email_service import send_purchase_confirmation_email
from app.services.payment_service import handle_payment_confirmation

logger = logging.getLogger(__name__)

router = APIRouter()

CHECKOUT_COMPLETED = "checkout.session.completed"


def _verify_stripe_event(payload: bytes, signature: str | None, secret: str) -> dict:
    stripe.WebhookSignature.verify_header(payload.decode("utf-8"), signature or "", secret)
    return json.loads(payload)


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured")
        return JSONResponse(status_code=500, content={"error": "Missing webhook configuration"})

    payload = await request.body()
    try:
        event = _verify_stripe_event(payload, request.headers.get("stripe-signature"), config.STRIPE_WEBHOOK_SECRET)
    except (stripe.SignatureVerificationError, ValueError) as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return JSONResponse(status_code=400, content={"error": f"Webhook Error: {e}"})

    event_type = event.get("type")
    logger.info(f"Webhook verified: {event_type} ({event.get('id')})")

    if event_type != CHECKOUT_COMPLETED:
        logger.info(f"Unhandled webhook event: {event_type}")
        return {"received": True, "event_type": event_type}

    session = (event.get("data") or {}).get("object") or {}
    confirmation = PaymentConfirmation.from_checkout_session(session)
    # the grant blocks on the identity lock and the database; keep it off the event loop
    outcome = await asyncio.to_thread(
        handle_payment_confirmation,
        db,
        confirmation,
        notify=lambda email: background_tasks.add_task(send_purchase_confirmation_email, email),
    )

    if outcome.should_redeliver:
        # a 5xx makes Stripe retry the delivery
        return JSONResponse(
            status_code=500,
            content={"error": outcome.reason, "event_type": event_type},
        )

    body = {"received": True, "event_type": event_type, "status": outcome.status.value}
    if outcome.reason:
        body["warning"] = outcome.reason
    return body
