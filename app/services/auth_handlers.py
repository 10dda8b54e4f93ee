import asyncio
import jwt
import logging
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import is_development
from app.core.identity import InvalidIdentityError, normalize_identity
from app.services.auth_service import (
    CONFIRM_EMAIL,
    LOGIN,
    create_access_token,
    decode_access_token,
    issue_code,
    verify_code,
)
from app.services.email_service import send_code_email
from app.services.entitlement_service import is_entitled
from app.services.verification_service import is_email_verified, mark_email_verified

logger = logging.getLogger(__name__)

INVALID_CODE_DETAIL = "Invalid or expired code"


def _issue_code_or_400(db: Session, email: str, purpose: str) -> str:
    try:
        return issue_code(db, email, purpose)
    except InvalidIdentityError:
        raise HTTPException(status_code=400, detail="Invalid email")


def _verify_code_or_401(db: Session, email: str, code: str, purpose: str) -> None:
    try:
        valid = verify_code(db, email, code, purpose)
    except InvalidIdentityError:
        raise HTTPException(status_code=400, detail="Invalid email")
    if not valid:
        raise HTTPException(status_code=401, detail=INVALID_CODE_DETAIL)


async def _send_code(db: Session, email: str, purpose: str, message: str) -> dict:
    # issuing blocks on the identity lock and the database; keep it off the event loop
    code = await asyncio.to_thread(_issue_code_or_400, db, email, purpose)
    if not await send_code_email(email, code):
        raise HTTPException(status_code=500, detail="Failed to send email")
    response = {"success": True, "message": message}
    if is_development():
        response["dev_code"] = code
    return response


async def request_login_code(db: Session, email: str) -> dict:
    return await _send_code(db, email, LOGIN, "OTP code sent by email")


def login(db: Session, email: str, code: str) -> dict:
    _verify_code_or_401(db, email, code, LOGIN)
    if not is_entitled(db, email):
        raise HTTPException(
            status_code=403,
            detail="Premium access required. You must purchase premium access to log in",
        )
    return {"success": True, "token": create_access_token(normalize_identity(email)), "email": email}


def check_entitlement(db: Session, email: str) -> dict:
    return {"email": email, "has_premium": is_entitled(db, email)}


async def request_email_verification(db: Session, email: str) -> dict:
    return await _send_code(db, email, CONFIRM_EMAIL, "Verification code sent by email")


def confirm_email(db: Session, email: str, code: str) -> dict:
    _verify_code_or_401(db, email, code, CONFIRM_EMAIL)
    mark_email_verified(db, email)
    return {"email": email, "verified": True}


def email_verification_status(db: Session, email: str) -> dict:
    try:
        verified = is_email_verified(db, email)
    except InvalidIdentityError:
        raise HTTPException(status_code=400, detail="Invalid email")
    return {"email": email, "verified": verified}


def validate_token(db: Session, token: str) -> dict:
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    email = payload.get("email")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token")
    return {"email": email, "has_premium": is_entitled(db, email), "data": payload}
