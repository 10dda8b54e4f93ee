from fastapi import APIRouter, Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import EmailStr
from sqlalchemy.orm import Session

from app.core.config import AUTH_RATE_LIMIT
from app.core.rate_limiting import limiter
from app.db.session import get_db
from app.schemas.auth_scheme import (
    CodeRequest,
    CodeVerificationRequest,
    CodeSentResponse,
    LoginResponse,
    EntitlementStatus,
    EmailVerificationStatus,
)
from app.services.auth_handlers import (
    request_login_code as svc_request_login_code,
    login as svc_login,
    check_entitlement as svc_check_entitlement,
    request_email_verification as svc_request_email_verification,
    confirm_email as svc_confirm_email,
    email_verification_status as svc_email_verification_status,
    validate_token as svc_validate_token,
)

router = APIRouter()
security = HTTPBearer()


# Send a login code
@router.post("/request-otp", response_model=CodeSentResponse, response_model_exclude_none=True)
@limiter.limit(AUTH_RATE_LIMIT)
async def request_otp(request: Request, body: CodeRequest, db: Session = Depends(get_db)):
    return await svc_request_login_code(db, body.email)

# Log in with email + code; only entitled identities get a token
@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(request: Request, body: CodeVerificationRequest, db: Session = Depends(get_db)):
    return svc_login(db, body.email, body.code)

# Premium status, no auth
@router.get("/check", response_model=EntitlementStatus)
def check(email: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return svc_check_entitlement(db, email)

# Send a code to prove the address is reachable
@router.post("/verify-email", response_model=CodeSentResponse, response_model_exclude_none=True)
@limiter.limit(AUTH_RATE_LIMIT)
async def verify_email(request: Request, body: CodeRequest, db: Session = Depends(get_db)):
    return await svc_request_email_verification(db, body.email)

# Confirm the address with the code
@router.post("/confirm-email", response_model=EmailVerificationStatus)
@limiter.limit(AUTH_RATE_LIMIT)
def confirm_email(request: Request, body: CodeVerificationRequest, db: Session = Depends(get_db)):
    return svc_confirm_email(db, body.email, body.code)

@router.get("/email-status", response_model=EmailVerificationStatus)
def email_status(email: EmailStr = Query(...), db: Session = Depends(get_db)):
    return svc_email_verification_status(db, email)

@router.get("/validate-token")
def validate_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
):
    return svc_validate_token(db, credentials.credentials)
