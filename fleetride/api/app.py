"""
FastAPI application factory.

* Registers routes for requesters, approvers, drivers, admins and
  notifications.
* Starts / stops the notification outbox dispatcher via lifespan events.
* Applies rate-limiting middleware and maps engine errors to responses.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fleetride.api.errors import register_exception_handlers
from fleetride.api.middleware import limiter
from fleetride.api.routes import admin, approvals, driver, notifications, rides
from fleetride.config import settings
from fleetride.workers import outbox as _outbox

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the outbox dispatcher on startup; stop on shutdown."""
    await _outbox.start_outbox_loop()
    yield
    await _outbox.stop_outbox_loop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Fleet Ride Approval & Assignment API",
        description=(
            "Employees request company rides, department heads and project "
            "managers approve them, and administrators assign a driver and "
            "vehicle.  Drivers run the trip and requesters rate it."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(approvals.department_head_router, prefix="/api/v1")
    app.include_router(approvals.project_manager_router, prefix="/api/v1")
    app.include_router(driver.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")

    return app
