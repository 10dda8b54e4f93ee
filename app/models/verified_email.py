from sqlalchemy import Column, String, DateTime
from .base import Base

class VerifiedEmail(Base):
    __tablename__ = "verified_emails"

    email = Column(String, primary_key=True)
    verified_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
