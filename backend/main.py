import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.errors import register_error_handlers
from db.database import create_db_and_tables, engine
from routers.inventory import router as inventory_router
from routers.uploads import router as uploads_router

logging.basicConfig(level=settings.log_level, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Inventory API starting up...")
    await create_db_and_tables()
    yield
    logger.info("Inventory API shutting down...")
    await engine.dispose()


app = FastAPI(
    title="Inventory API",
    description="API for managing inventory items and their images",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/health", tags=["monitoring"])
async def health_check():
    return {"status": "healthy"}


# Inventory routes
app.include_router(inventory_router, prefix="/api/inventory", tags=["inventory"])

# Uploaded item images
app.include_router(uploads_router, prefix="/uploads", tags=["uploads"])

if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.app_host, port=settings.app_port, reload=True)
