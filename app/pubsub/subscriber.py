"""
Pub/Sub consumer for payment events published by the billing service.
Messages on the subscription are trusted; the publisher has already verified them.
Disabled unless PROJECT_ID and SUBSCRIPTION_ID are set.
"""
import json
import logging

from app.core import config
from app.db.session import SessionLocal
from app.schemas.payment_scheme import PaymentConfirmation
from app.services.email_service import notify_purchase_in_background
from app.services.payment_service import handle_payment_confirmation

logger = logging.getLogger(__name__)

PAYMENT_EVENTS = ("payment_approved", "payment_status_changed")


def is_enabled() -> bool:
    return bool(config.PROJECT_ID and config.SUBSCRIPTION_ID)


def process_message(message) -> None:
    """Ack once the outcome is final; nack so Pub/Sub redelivers after a storage failure."""
    try:
        data = json.loads(message.data.decode("utf-8"))
        event = data.get("event")
        payload = data.get("data") or {}
        if event not in PAYMENT_EVENTS or payload.get("status", "approved") != "approved":
            logger.info(f"Ignoring Pub/Sub event: {event}")
            message.ack()
            return
        confirmation = PaymentConfirmation.from_pubsub_payload(payload)
    except (ValueError, AttributeError, TypeError) as e:
        # redelivering a malformed message can never succeed
        logger.warning(f"Malformed Pub/Sub message dropped: {e}")
        message.ack()
        return

    db = SessionLocal()
    try:
        outcome = handle_payment_confirmation(
            db,
            confirmation,
            notify=notify_purchase_in_background,
        )
    finally:
        db.close()

    if outcome.should_redeliver:
        logger.error(f"Payment event failed, requesting redelivery: {outcome.reason}")
        message.nack()
    else:
        message.ack()


def start_subscriber():
    if not is_enabled():
        logger.info("Pub/Sub listener disabled: PROJECT_ID/SUBSCRIPTION_ID not set")
        return

    from google.cloud import pubsub_v1
    from google.cloud.pubsub_v1.types import FlowControl

    subscriber = pubsub_v1.SubscriberClient()
    subscription_path = subscriber.subscription_path(config.PROJECT_ID, config.SUBSCRIPTION_ID)
    flow_control = FlowControl(max_messages=1)

    logger.info(f"Listening for payment events on {subscription_path}")
    future = subscriber.subscribe(
        subscription_path,
        callback=process_message,
        flow_control=flow_control,
    )

    try:
        future.result()
    except KeyboardInterrupt:
        future.cancel()
