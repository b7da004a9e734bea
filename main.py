from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth.routes import router as auth_router
from budgets.budget_routes import router as budget_router
from categories.category_routes import router as category_router
from expenses.expense_routes import router as expense_router
from reports.report_routes import router as report_router
from settings.db import init_db, close_db
import logging
from settings.config import settings
from settings.errors import DatabaseUnavailableError, register_exception_handlers
from settings.logging_config import configure_logging

logger = logging.getLogger(__name__)


def get_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting Expense Tracker API")
    app = FastAPI(title="Expense Tracker API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    register_exception_handlers(app)

    # DB lifecycle
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Initializing database")
        try:
            await init_db()
        except DatabaseUnavailableError as e:
            # requests retry the connection lazily and answer 503 meanwhile
            logger.error(f"Database not reachable at startup: {e}")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Closing database")
        await close_db()

    # Routers
    app.include_router(auth_router)
    app.include_router(category_router)
    app.include_router(expense_router)
    app.include_router(budget_router)
    app.include_router(report_router)
    logger.info("Routers initialized successfully")

    # Health
    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "ok"}

    return app


# ASGI app instance
app = get_app()
