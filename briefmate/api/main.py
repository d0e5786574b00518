"""
Main FastAPI application.

Endpoints:
- /briefs/* - Owner brief management (core feature)
- /public/briefs/* - Client-facing read and validation, no account needed
- /clients/* - Client registry (reference mode only)
- /subscription/* - Billing management (self-serve)
- /user/* - Profile management (minimal)
- /webhooks/stripe - Stripe webhook handler
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import configure_logging, get_settings
from ..errors import BriefMateError


settings = get_settings()
configure_logging(settings)

# Create app
app = FastAPI(
    title="BriefMate API",
    description="Project briefs, sent to clients and validated with a code",
    version="1.0.0",
    docs_url="/docs" if settings.app_env == "development" else None,
    redoc_url=None,
)

# CORS - the frontend is the only browser caller
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Local dev
        settings.frontend_base_url,
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)


@app.exception_handler(BriefMateError)
async def briefmate_error_handler(request: Request, exc: BriefMateError):
    """Domain errors become their HTTP status with a plain detail message."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy", "version": "1.0.0"}


# Import and include routers
from .routes import briefs, clients, public, subscriptions, users, webhooks

app.include_router(briefs.router, prefix="/briefs", tags=["briefs"])
app.include_router(public.router, prefix="/public/briefs", tags=["public"])
app.include_router(clients.router, prefix="/clients", tags=["clients"])
app.include_router(subscriptions.router, prefix="/subscription", tags=["subscription"])
app.include_router(users.router, prefix="/user", tags=["user"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
