"""
Verified-email gate: short-lived proof that an address received and returned a code.
Independent of entitlements; callers combine the two when they need both.
"""
import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from app.core import clock
from app.core.config import EMAIL_VERIFIED_TTL_MINUTES
from app.core.identity import require_identity
from app.db.locks import serialized, VERIFIED_EMAILS
from app.db.transactions import TransactionContext
from app.models.verified_email import VerifiedEmail

logger = logging.getLogger(__name__)


@serialized(VERIFIED_EMAILS)
def mark_email_verified(db: Session, email: str) -> None:
    """Record a successful confirm-email challenge, replacing any previous marker."""
    email = require_identity(email)
    now = clock.utcnow()
    with TransactionContext(db) as tx:
        tx.session.merge(VerifiedEmail(
            email=email,
            verified_at=now,
            expires_at=now + timedelta(minutes=EMAIL_VERIFIED_TTL_MINUTES),
        ))
    logger.info(f"Email marked as verified: {email}")


@serialized(VERIFIED_EMAILS)
def is_email_verified(db: Session, email: str) -> bool:
    email = require_identity(email)
    with TransactionContext(db) as tx:
        marker = tx.session.get(VerifiedEmail, email)
        if marker is None:
            return False
        if clock.utcnow() < clock.as_utc(marker.expires_at):
            return True
        tx.session.delete(marker)
        logger.info(f"Expired email verification discarded for: {email}")
        return False
