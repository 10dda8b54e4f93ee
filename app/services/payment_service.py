"""
Payment confirmation handling

Turns an already-authenticated "payment completed" event into an entitlement.
The outcome tells the delivering collaborator whether to redeliver:
granted and warned are final, failed asks for another attempt.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.identity import is_valid_identity, normalize_identity
from app.schemas.payment_scheme import PaymentConfirmation
from app.services.entitlement_service import grant_entitlement

logger = logging.getLogger(__name__)


class PaymentStatus(str, enum.Enum):
    GRANTED = "granted"
    WARNED = "warned"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentOutcome:
    status: PaymentStatus
    reason: Optional[str] = None

    @classmethod
    def granted(cls) -> "PaymentOutcome":
        return cls(PaymentStatus.GRANTED)

    @classmethod
    def warned(cls, reason: str) -> "PaymentOutcome":
        return cls(PaymentStatus.WARNED, reason)

    @classmethod
    def failed(cls, reason: str) -> "PaymentOutcome":
        return cls(PaymentStatus.FAILED, reason)

    @property
    def should_redeliver(self) -> bool:
        return self.status is PaymentStatus.FAILED


def handle_payment_confirmation(
    db: Session,
    event: PaymentConfirmation,
    notify: Callable[[str], None] | None = None,
) -> PaymentOutcome:
    """
    Grant the entitlement for a confirmed payment

    Args:
        db: Database session
        event: Pre-authenticated payment confirmation
        notify: Called with the email once a new entitlement is committed.
            Its failures are logged and never affect the outcome.

    Returns:
        PaymentOutcome: granted, warned(reason) or failed(reason)
    """
    email = event.identity

    if not email:
        logger.error(f"Missing email in payment confirmation: {event.source_reference}")
        return PaymentOutcome.warned("Missing email")

    if not is_valid_identity(email):
        logger.error(f"Invalid email in payment confirmation {event.source_reference}: {email}")
        return PaymentOutcome.warned("Invalid email")

    try:
        created = grant_entitlement(db, email, event.source_reference)
    except SQLAlchemyError as e:
        logger.error(f"Premium activation failed for {email}: {e}")
        return PaymentOutcome.failed("Premium activation failed")

    logger.info(f"Premium access active for: {email}")

    if created and notify is not None:
        try:
            notify(normalize_identity(email))
        except Exception:
            logger.exception(f"Purchase notification failed for: {email}")

    return PaymentOutcome.granted()
