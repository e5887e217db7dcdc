import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from helpdesk.api.routes import metrics, ping, tickets
from helpdesk.core.config import Settings, get_settings
from helpdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from helpdesk.notifications import LoggingTicketNotifier, SmtpTicketNotifier, TicketNotifier
from helpdesk.services.postgres import PostgresPoolProvider
from helpdesk.tickets import (
    InMemoryCounterStore,
    InMemoryProjectDirectory,
    InMemoryTicketStore,
    PostgresCounterStore,
    PostgresProjectDirectory,
    PostgresTicketRepository,
    ProjectMemberResolver,
    TicketNumberAllocator,
    TicketService,
    ensure_schema,
)

logger = logging.getLogger(__name__)


def build_notifier(settings: Settings) -> TicketNotifier:
    if not settings.smtp_host:
        return LoggingTicketNotifier()
    return SmtpTicketNotifier(
        settings.smtp_host,
        settings.smtp_port,
        sender=settings.smtp_sender,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
    )


def build_ticket_service(settings: Settings, *, counters, tickets_store, directory) -> TicketService:
    return TicketService(
        tickets_store,
        TicketNumberAllocator(counters),
        ProjectMemberResolver(directory),
        max_attempts=settings.ticket_creation_max_attempts,
        duplicate_window=timedelta(hours=settings.duplicate_window_hours),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.notifier = build_notifier(settings)
    app.state.ticket_service = None
    pool_provider: PostgresPoolProvider | None = None

    if settings.storage_backend == "memory":
        logger.warning("Using in-memory storage; tickets are lost on restart")
        app.state.ticket_service = build_ticket_service(
            settings,
            counters=InMemoryCounterStore(),
            tickets_store=InMemoryTicketStore(),
            directory=InMemoryProjectDirectory(),
        )
    else:
        pool_provider = PostgresPoolProvider(
            dsn=settings.postgres_dsn,
            min_size=settings.postgres_pool_min_size,
            max_size=settings.postgres_pool_max_size,
        )
        try:
            pool = await pool_provider.get_pool()
            await ensure_schema(pool)
            app.state.ticket_service = build_ticket_service(
                settings,
                counters=PostgresCounterStore(pool),
                tickets_store=PostgresTicketRepository(pool),
                directory=PostgresProjectDirectory(pool),
            )
        except Exception:
            logger.exception("Ticket service initialisation failed; ticket routes will return 503")
            await pool_provider.close()
            pool_provider = None

    try:
        yield
    finally:
        if pool_provider is not None:
            await pool_provider.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(metrics.router)
    app.include_router(tickets.router)
    return app


app = create_app()
