from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI

from lockerbay.core.clock import utcnow
from lockerbay.core.repositories.event_publisher import EventPublisher
from lockerbay.core.use_cases.verification_service import SmsSender
from lockerbay.infrastructure.config import Settings
from lockerbay.infrastructure.database import Base, create_session_factory, create_store_engine
from lockerbay.infrastructure.inventory import load_inventory_file
from lockerbay.infrastructure.logging_config import configure_logging
from lockerbay.infrastructure.models import models  # noqa: F401  registers tables on Base
from lockerbay.infrastructure.repositories.event_publisher_jsonl_impl import JsonlEventPublisherImpl
from lockerbay.infrastructure.sms_sender import TwilioSmsSender
from lockerbay.presentation.auth import IdentityVerifier, PassthroughIdentityVerifier
from lockerbay.presentation.routers import router
from lockerbay.services.lockerbay_service import ServiceContext, purge_expired_codes_service

logger = logging.getLogger(__name__)


def create_app(
        settings: Optional[Settings] = None,
        *,
        identity_verifier: Optional[IdentityVerifier] = None,
        publisher: Optional[EventPublisher] = None,
        sms_sender: Optional[SmsSender] = None,
        clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the API. Run with `uvicorn --factory lockerbay.main:create_app`.
    """
    settings = settings or Settings()
    configure_logging(settings)

    engine = create_store_engine(settings)
    session_factory = create_session_factory(engine)
    Base.metadata.create_all(bind=engine)

    if settings.inventory_path is not None:
        load_inventory_file(session_factory, settings.inventory_path)

    context = ServiceContext(
        settings=settings,
        publisher=publisher or JsonlEventPublisherImpl(file_path=settings.event_log_path),
        sms_sender=sms_sender or TwilioSmsSender.from_settings(settings),
        clock=clock or utcnow,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        On startup drop verification codes that can no longer be used; on shutdown release the pool
        """
        db = session_factory()
        try:
            purge_expired_codes_service(db, context)
        finally:
            db.close()
        yield
        engine.dispose()

    app = FastAPI(title="LockerBay", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.service_context = context
    app.state.identity_verifier = identity_verifier or PassthroughIdentityVerifier()
    app.state.operator_ids = frozenset(settings.operator_user_ids)
    app.include_router(router)

    logger.info("LockerBay API ready (environment=%s)", settings.environment)
    return app
