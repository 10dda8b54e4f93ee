from sqlalchemy import Column, Integer, String, DateTime
from .base import Base

class Entitlement(Base):
    __tablename__ = "entitlements"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    activated_at = Column(DateTime(timezone=True), nullable=False)
    # id of the payment event that triggered the grant (e.g. a Stripe checkout session)
    source_reference = Column(String, nullable=True)
