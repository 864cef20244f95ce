"""FastAPI application factory and lifespan management."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from tradejournal.compliance import RuleComplianceEngine
from tradejournal.db.database import Database
from tradejournal.importer.batch import BatchImporter
from tradejournal.recorder import TradeRecorder

# Store, engine, importer and recorder shared with the route handlers
app_state: dict = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("Starting Trade Journal API...")

    db = Database()
    await db.connect()

    engine = RuleComplianceEngine()
    app_state["db"] = db
    app_state["engine"] = engine
    app_state["importer"] = BatchImporter(db, engine)
    app_state["recorder"] = TradeRecorder(db, engine)

    yield

    logger.info("Shutting down Trade Journal API...")
    await db.disconnect()
    app_state.clear()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Trade Journal API",
        description="Trade import, rule compliance and performance metrics",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "db_connected": "db" in app_state}

    from tradejournal.api.imports import router as imports_router
    from tradejournal.api.trades import router as trades_router
    from tradejournal.api.rules import router as rules_router
    from tradejournal.api.metrics import router as metrics_router

    app.include_router(imports_router)
    app.include_router(trades_router)
    app.include_router(rules_router)
    app.include_router(metrics_router)

    return app
