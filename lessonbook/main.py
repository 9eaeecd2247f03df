import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import bookings, payments, slots, trainers
from .config import get_settings
from .db import session as db_session
from .services.container import ServiceContainer, build_container
from .services.persistence import LocalCache
from .workers.scheduler import ExpirySweeper, SweepScheduler

logger = logging.getLogger(__name__)


def create_app(container: ServiceContainer | None = None, *, run_background: bool = True) -> FastAPI:
    app = FastAPI(title="LessonBook API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(slots.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(payments.router, prefix="/api/v1")
    app.include_router(trainers.router, prefix="/api/v1")

    engine = None
    if container is None:
        settings = get_settings()
        engine = db_session.engine
        container = build_container(
            settings,
            session_factory=db_session.SessionLocal,
            cache=LocalCache(settings.local_cache_path),
        )
    app.state.container = container
    app.state.scheduler = None

    @app.on_event("startup")
    async def startup_event() -> None:
        if engine is not None:
            db_session.Base.metadata.create_all(bind=engine)
        if not run_background:
            return
        if container.synchronizer is not None:
            source = container.synchronizer.load_initial()
            logger.info("Booking state ready", extra={"source": source})
        scheduler = SweepScheduler(
            ExpirySweeper(container.bookings),
            container.synchronizer,
            sweep_interval_seconds=container.settings.sweep_interval_seconds,
            sync_interval_seconds=container.settings.sync_interval_seconds,
        )
        scheduler.start()
        app.state.scheduler = scheduler

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown()
        container.close()

    return app


logging.basicConfig(level=logging.INFO)
app = create_app()
