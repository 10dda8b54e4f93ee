from sqlalchemy import Column, String, DateTime
from .base import Base
from app.core.clock import utcnow

class VerificationCode(Base):
    __tablename__ = "verification_codes"

    # one pending code per identity
    email = Column(String, primary_key=True)
    code = Column(String(6), nullable=False)
    # a code only verifies for the flow it was issued for ("login" or "confirm_email")
    purpose = Column(String(32), nullable=False, default="login")
    expiration = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
