"""
One-time login codes and access tokens
Codes are single use, expire after CODE_TTL_MINUTES and are consumed atomically
"""
import hmac
import jwt
import secrets
from datetime import timedelta
from sqlalchemy.orm import Session
from app.core import clock
from app.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_DAYS, CODE_TTL_MINUTES
from app.core.identity import require_identity
from app.models.verification_code import VerificationCode
from app.db.locks import serialized, CODES
from app.db.transactions import atomic_transaction
import logging

logger = logging.getLogger(__name__)

CODE_LENGTH = 6

# code purposes
LOGIN = "login"
CONFIRM_EMAIL = "confirm_email"
PURPOSES = (LOGIN, CONFIRM_EMAIL)


# ==================== ACCESS TOKENS ====================

def create_access_token(email: str, expires_delta: timedelta = None) -> str:
    now = clock.utcnow()
    expire = now + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"sub": email, "email": email, "iat": now, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])


# ==================== ONE-TIME CODES ====================

def generate_code() -> str:
    """Uniformly random code over 000000-999999."""
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


@serialized(CODES)
@atomic_transaction
def issue_code(db: Session, email: str, purpose: str = LOGIN) -> str:
    """
    Create a fresh code for the identity, replacing any pending one

    Args:
        db: Database session
        email: Identity the code is issued for
        purpose: Flow the code is valid for (LOGIN or CONFIRM_EMAIL)

    Returns:
        str: The code to deliver

    Raises:
        InvalidIdentityError: If the email is missing or has no "@"
    """
    email = require_identity(email)
    if purpose not in PURPOSES:
        raise ValueError(f"Unknown code purpose: {purpose}")

    now = clock.utcnow()
    code = generate_code()
    db.merge(VerificationCode(
        email=email,
        code=code,
        purpose=purpose,
        expiration=now + timedelta(minutes=CODE_TTL_MINUTES),
        created_at=now,
    ))
    db.flush()

    logger.info(f"Verification code ({purpose}) issued for: {email}")
    return code


@serialized(CODES)
@atomic_transaction
def verify_code(db: Session, email: str, code: str, purpose: str = LOGIN) -> bool:
    """
    Check a submitted code and consume it on match

    Missing, expired, mismatching and wrong-purpose codes all return False so
    callers can't tell which identities have a pending code. An expired record
    is deleted; a mismatch leaves the record in place until it expires or is
    matched by the flow it was issued for.

    Args:
        db: Database session
        email: Identity the code was issued for
        code: Code submitted by the user
        purpose: Flow the code is being redeemed for

    Returns:
        bool: True exactly once per issued code
    """
    email = require_identity(email)
    db_code = db.get(VerificationCode, email)

    if db_code is None:
        logger.warning(f"No pending verification code for: {email}")
        return False

    if clock.utcnow() >= clock.as_utc(db_code.expiration):
        db.delete(db_code)
        logger.warning(f"Expired verification code discarded for: {email}")
        return False

    if db_code.purpose != purpose:
        logger.warning(f"Verification code for {email} was issued for {db_code.purpose}, not {purpose}")
        return False

    if not hmac.compare_digest(db_code.code, str(code)):
        logger.warning(f"Wrong verification code for: {email}")
        return False

    # another process may have consumed it since the read; only one DELETE can match
    deleted = (
        db.query(VerificationCode)
        .filter_by(email=email, code=db_code.code, purpose=purpose)
        .delete(synchronize_session=False)
    )
    db.expunge(db_code)
    if deleted != 1:
        logger.warning(f"Verification code already consumed for: {email}")
        return False

    logger.info(f"Verification code ({purpose}) validated and consumed for: {email}")
    return True
