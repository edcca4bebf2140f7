"""
FastAPI application entry point.
"""
import logging
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from teamsync.api import (
    activity,
    admin,
    auth,
    dashboard,
    health,
    invites,
    members,
    organization,
    profile,
    quota,
    teams,
)
from teamsync.core.auth import warn_if_default_secret
from teamsync.core.config import get_settings
from teamsync.core.database import SessionLocal
from teamsync.core.errors import MembershipError
from teamsync.services.organization import seed_default_tiers

logger = logging.getLogger(__name__)

app_settings = get_settings()

app = FastAPI(
    title="TeamSync API",
    description="Organization, team membership and quota management API",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MembershipError)
async def membership_error_handler(request: Request, exc: MembershipError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Validation failed",
            "code": "validation_error",
            "details": jsonable_encoder(exc.errors()),
        },
    )


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(invites.router, prefix="/api/invite", tags=["invites"])
app.include_router(members.router, prefix="/api/members", tags=["members"])
app.include_router(teams.router, prefix="/api/team", tags=["teams"])
app.include_router(quota.router, prefix="/api/quota", tags=["quota"])
app.include_router(activity.router, prefix="/api/activity", tags=["activity"])
app.include_router(organization.router, prefix="/api/organization", tags=["organization"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(profile.router, prefix="/api/profile", tags=["profile"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])


@app.on_event("startup")
async def startup_event():
    """Make sure the default tiers exist before the first signup."""
    warn_if_default_secret()
    db = SessionLocal()
    try:
        created = seed_default_tiers(db)
        if created:
            logger.info(f"Seeded tiers: {', '.join(t.name for t in created)}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Could not seed default tiers: {e}")
    finally:
        db.close()
