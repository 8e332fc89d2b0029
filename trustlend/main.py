"""TrustLend API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map LedgerError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, arrangement locks, notifier, code store and reminder sweeper are
      created in the lifespan and torn down in reverse order

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Collaborators live on app.state so tests can install fakes without patching
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trustlend.api.error_handlers import register_error_handlers
from trustlend.api.routes import (
    arrangements, health, payments, proposals, reminders, users, verification,
)
from trustlend.config import get_settings
from trustlend.core.verification_codes import VerificationCodeStore
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.infrastructure.database import init_db
from trustlend.infrastructure.email_notifier import EmailNotifier
from trustlend.infrastructure.observability import setup_logging
from trustlend.services.reminder_sweep import ReminderSweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.arrangement_locks = ArrangementLocks()
    app.state.notifier = EmailNotifier.from_settings(settings)
    app.state.code_store = VerificationCodeStore(
        ttl=timedelta(minutes=settings.verification_code_ttl_minutes),
    )
    sweeper = ReminderSweeper(
        manager.session,
        app.state.arrangement_locks,
        app.state.notifier,
        rate_limit_hours=settings.reminder_rate_limit_hours,
        interval_seconds=settings.reminder_sweep_interval_seconds,
        startup_delay_seconds=settings.reminder_sweep_startup_delay_seconds,
        max_attempts=settings.store_max_attempts,
    )
    app.state.reminder_sweeper = sweeper
    if settings.reminder_sweep_enabled:
        sweeper.start()
    logger.info("TrustLend API started")
    yield
    logger.info("TrustLend API shutting down")
    await sweeper.stop()
    await manager.dispose()


app = FastAPI(
    title="TrustLend API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(verification.router)
app.include_router(arrangements.router)
app.include_router(payments.router)
app.include_router(proposals.router)
app.include_router(reminders.router)

register_error_handlers(app)
