"""
Entitlement ledger: which identities hold paid access

Grants are idempotent. The first grant for an identity wins; later grants,
whatever their source reference, leave the stored record untouched.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import clock
from app.core.identity import normalize_identity, require_identity
from app.db.locks import serialized, ENTITLEMENTS
from app.db.transactions import atomic_transaction, retry_on_deadlock
from app.models.entitlement import Entitlement

logger = logging.getLogger(__name__)


def is_entitled(db: Session, email: str) -> bool:
    if not email:
        return False
    return get_entitlement(db, email) is not None


def get_entitlement(db: Session, email: str) -> Entitlement | None:
    return (
        db.query(Entitlement)
        .filter(Entitlement.email == normalize_identity(email))
        .one_or_none()
    )


@serialized(ENTITLEMENTS)
@retry_on_deadlock(max_attempts=3)
@atomic_transaction
def grant_entitlement(db: Session, email: str, source_reference: str | None = None) -> bool:
    """
    Insert the entitlement if absent

    Args:
        db: Database session
        email: Identity to entitle
        source_reference: Opaque id of the triggering payment event

    Returns:
        bool: True if this call created the record, False if it already existed.
        Both are successful outcomes.

    Raises:
        InvalidIdentityError: If the email is missing or has no "@"
    """
    email = require_identity(email)

    if get_entitlement(db, email) is not None:
        logger.info(f"Entitlement already active, grant ignored: {email}")
        return False

    db.add(Entitlement(
        email=email,
        activated_at=clock.utcnow(),
        source_reference=source_reference,
    ))
    try:
        db.flush()
    except IntegrityError:
        # a concurrent writer in another process inserted it first
        db.rollback()
        logger.info(f"Entitlement inserted concurrently, grant ignored: {email}")
        return False

    logger.info(f"Entitlement granted: {email} (source: {source_reference})")
    return True
