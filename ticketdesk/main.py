from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ticketdesk.api.routes import ping, representatives, tickets
from ticketdesk.core.config import get_settings
from ticketdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from ticketdesk.services.postgres import PostgresConnectionTester
from ticketdesk.tickets import CatalogConfigurationError, TicketService
from ticketdesk.tickets.repository import TicketUnitOfWork


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.postgres_tester = PostgresConnectionTester(dsn=settings.database_url)
    app.state.ticket_service = None

    db_engine = create_async_engine(settings.database_url, future=True)
    try:
        session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
        unit_of_work = TicketUnitOfWork(session_factory, engine=db_engine)
        await unit_of_work.ensure_schema()
        service = TicketService(unit_of_work, settings=settings)
        await service.load_catalog()
        app.state.ticket_service = service
    except (OSError, SQLAlchemyError, CatalogConfigurationError):
        logger.exception("Ticket service initialisation failed; ticket endpoints will answer 503")

    try:
        yield
    finally:
        await db_engine.dispose()
        await app.state.postgres_tester.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(representatives.router)
    return app


app = create_app()
