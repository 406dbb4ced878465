"""
FastAPI Main Application with Agent Scheduler
Wires the treasury agent, its scheduler and the HTTP surface
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator
from sqlalchemy import text

from app.config import settings
from app.core.logging import setup_logging
from app.infrastructure.db.database import init_db, close_db
from app.services.agent_service import AgentService
from app.utils.time import utc_now

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting DustMite treasury agent")
    logger.info("=" * 60)

    logger.info("📊 Step 1/3: Initializing database...")
    await init_db()
    logger.info("✅ Database initialized")

    logger.info("🔧 Step 2/3: Building agent service...")
    service = AgentService.from_settings(settings)
    app.state.agent_service = service
    logger.info("✅ Agent service ready")

    logger.info("⏰ Step 3/3: Starting background scheduler...")
    if settings.SCHEDULER_ENABLED:
        try:
            service.scheduler.start()
        except Exception as e:
            logger.error(f"❌ Failed to start scheduler: {e}")
    else:
        logger.info("⏰ Scheduler disabled")

    logger.info("🎯 API Server: http://%s:%s (docs at /docs)", settings.API_HOST, settings.API_PORT)

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down DustMite...")
    service.scheduler.stop()

    logger.info("📊 Closing database connections...")
    await close_db()
    logger.info("👋 Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="DustMite API",
    description="Autonomous treasury agent that moves idle USDC into yield-bearing tokens using AI decision-making",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check with database and scheduler status"""
    db_status = "disconnected"
    try:
        from app.infrastructure.db.database import engine
        if engine is None:
            db_status = "not_initialized"
        else:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "connected"
    except Exception as exc:
        logger.error("Health check database error: %s", exc)
        db_status = "error"

    service = getattr(app.state, "agent_service", None)
    scheduler_status = "disabled"
    if service is not None and service.scheduler.running:
        scheduler_status = "running"

    return {
        "status": "ok",
        "timestamp": utc_now().isoformat(),
        "services": {
            "database": db_status,
            "scheduler": scheduler_status,
        },
    }


# Import and include routers
from app.api.routes import agent, admin

app.include_router(agent.router, prefix="/agent", tags=["agent"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
