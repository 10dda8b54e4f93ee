import os
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app.api import auth_routes, webhook_routes
from app.core.config import CORS_ORIGIN
from app.core.logging import configure_logging
from app.core.rate_limiting import limiter, rate_limit_exceeded_handler
from app.db.session import engine
from app.models.base import Base
from app.models import entitlement, verification_code, verified_email  # noqa: F401  register tables
from app.pubsub.subscriber import is_enabled as pubsub_enabled, start_subscriber

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    if pubsub_enabled():
        thread = threading.Thread(target=start_subscriber, daemon=True)
        thread.start()
    yield


app = FastAPI(title="Premium access service", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.include_router(auth_routes.router, prefix="/auth", tags=["auth"])
app.include_router(webhook_routes.router, prefix="/webhook", tags=["webhook"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in CORS_ORIGIN.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"name": "Premium access service", "status": "running"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
