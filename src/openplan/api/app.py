"""
openplan.api.app

FastAPI app factory.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Map domain errors (`openplan.errors`) onto HTTP responses.
- On startup: create the DB engine/session factory, load the YAML application
  configuration, migrate legacy mail configuration into the settings table and
  configure the mailer.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
)

from openplan import __version__
from openplan.api.routers.dev_auth import router as dev_auth_router
from openplan.api.routers.health import router as health_router
from openplan.api.routers.invitations import router as invitations_router
from openplan.api.routers.jobs import router as jobs_router
from openplan.api.routers.mail_settings import router as mail_settings_router
from openplan.api.routers.notification_settings import router as notification_settings_router
from openplan.api.routers.notifications import router as notifications_router
from openplan.api.routers.preferences import router as preferences_router
from openplan.api.routers.queries import router as queries_router
from openplan.api.routers.work_packages import router as work_packages_router
from openplan.configuration import load_configuration
from openplan.db.init_db import init_db, seed_roles
from openplan.db.session import create_engine, create_sessionmaker
from openplan.errors import ConflictError, NotFoundError, ValidationFailed
from openplan.mail.mailer import Mailer
from openplan.observability.logging import configure_logging, get_logger
from openplan.observability.middleware import RequestContextMiddleware
from openplan.services.settings_store import SettingsStore
from openplan.settings import Settings

log = get_logger(__name__)

_ERROR_STATUS = {
    NotFoundError: HTTP_404_NOT_FOUND,
    ConflictError: HTTP_409_CONFLICT,
    ValidationFailed: HTTP_422_UNPROCESSABLE_ENTITY,
}


def _register_error_handlers(app: FastAPI) -> None:
    for error_cls, status_code in _ERROR_STATUS.items():

        async def _handler(_: Request, exc: Exception, status_code: int = status_code) -> JSONResponse:
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        app.add_exception_handler(error_cls, _handler)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    app = FastAPI(
        title="OpenPlan",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    _register_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(notifications_router)
    app.include_router(notification_settings_router)
    app.include_router(preferences_router)
    app.include_router(queries_router)
    app.include_router(invitations_router)
    app.include_router(work_packages_router)
    app.include_router(mail_settings_router)
    app.include_router(jobs_router)

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Prod schemas come from `alembic upgrade head`.
            await init_db(engine)
            await seed_roles(app.state.sessionmaker)

        configuration = load_configuration(file=settings.configuration_file, env=settings.env)
        app.state.configuration = configuration

        # Tests inspect `mailer.deliveries`; other envs stay silent until configured.
        mailer = Mailer(
            delivery_method="test" if settings.env == "test" else "smtp",
            perform_deliveries=settings.env == "test",
        )
        app.state.mailer = mailer

        async with app.state.sessionmaker() as session:
            store = SettingsStore(session)
            await configuration.migrate_mailer_configuration(store)
            await session.commit()
            configuration.reload_mailer_configuration(mailer, await store.snapshot())

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
        log.info("shutdown")

    return app
