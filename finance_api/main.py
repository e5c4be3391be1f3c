import os
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from finance_api.config import Settings
from finance_api.db import Database
from finance_api.errors import FinanceError
from finance_api.logging_setup import configure_logging
from finance_api.routers import accounts, auth, budget, categories, summary, transactions

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.database_url, echo=settings.sql_echo)
        await database.create_all()
        app.state.database = database
        logger.info("database_ready", using_sqlite=database.using_sqlite)
        try:
            yield
        finally:
            await database.dispose()
            logger.info("database_disposed")

    app = FastAPI(title="Personal Finance API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------------
    # Error envelopes
    # ------------------------------------------------------------------------
    @app.exception_handler(FinanceError)
    async def finance_error_handler(request: Request, exc: FinanceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # rejected input can be non-finite and is not JSON-serializable
        errors = [{k: v for k, v in e.items() if k != "input"} for e in exc.errors()]
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "detail": jsonable_encoder(errors)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("storage_error", path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=503,
            content={"error": "persistence_error", "detail": "Storage unavailable"},
        )

    # ------------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------------
    @app.get("/")
    async def read_root():
        return {"message": "Personal Finance Backend is running"}

    @app.get("/health")
    async def health(request: Request):
        database: Database = request.app.state.database
        info = {
            "backend": "running",
            "using_sqlite_fallback": database.using_sqlite,
            "database": "unavailable",
        }
        try:
            await database.ping()
            info["database"] = "available"
        except SQLAlchemyError as e:
            info["error"] = str(e)[:160]
            return JSONResponse(status_code=503, content=info)
        return info

    for module in (auth, accounts, transactions, categories, budget, summary):
        app.include_router(module.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
