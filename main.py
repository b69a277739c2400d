# main.py
"""Main application: wires the RAG service into FastAPI and runs the ingestion workers"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from config import settings
from services.logger_config import setup_logging
from database.session import create_engine, create_session_factory, init_db
from api.endpoints import router
from services.factory import build_rag_service

setup_logging()
logger = logging.getLogger(settings.LOGGER_NAME)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting application...")

    engine = create_engine(settings.DATABASE_URL)
    await init_db(engine)
    logger.info("Database initialized")

    rag_service = build_rag_service(create_session_factory(engine), settings)
    await rag_service.start()
    app.state.rag_service = rag_service
    logger.info("Services initialized")
    yield

    # Drain workers before the engine goes away
    logger.info("Shutting down ingestion workers...")
    await rag_service.stop()
    await engine.dispose()

    logger.info("Application shutdown complete")

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
