from app.models.base import Base
from app.models.verification_code import VerificationCode
from app.models.verified_email import VerifiedEmail
from app.models.entitlement import Entitlement
from app.db.session import engine

Base.metadata.create_all(bind=engine)
print("Tables created.")
