"""
Runtime configuration read from the environment (.env is loaded when present)
"""
import os
from dotenv import load_dotenv

env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '..', '.env')
load_dotenv(env_path)

APP_ENV = os.getenv("APP_ENV", "production")
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./premium_access.db")

# Access tokens (credential issuer)
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "90"))

# One-time codes and the verified-email window
CODE_TTL_MINUTES = int(os.getenv("CODE_TTL_MINUTES", "10"))
EMAIL_VERIFIED_TTL_MINUTES = int(os.getenv("EMAIL_VERIFIED_TTL_MINUTES", "30"))

# Per-IP limit on the code and login endpoints (slowapi syntax)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "10/15minute")

# SMTP delivery
MAIL_USERNAME = os.getenv("MAIL_USERNAME")
MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
MAIL_FROM = os.getenv("MAIL_FROM", MAIL_USERNAME)
_raw_password = os.getenv("MAIL_PASSWORD")
MAIL_PASSWORD = None
if _raw_password is not None:
    # strip quotes; Gmail app passwords are shown with spaces but sent without
    cleaned = _raw_password.strip().strip('"').strip()
    MAIL_PASSWORD = cleaned.replace(" ", "") if "gmail" in MAIL_SERVER.lower() else cleaned

# Stripe
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

# Pub/Sub payment events (disabled unless both are set)
PROJECT_ID = os.getenv("PROJECT_ID")
SUBSCRIPTION_ID = os.getenv("SUBSCRIPTION_ID")


def is_development() -> bool:
    return APP_ENV == "development"
