import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import time

from hub.database import engine, Base
from hub.routers import analytics, categories, links, youtube
from hub.config import settings
from hub.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управляет жизненным циклом приложения"""
    logger.info("Запуск приложения...")

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    logger.info("Завершение работы приложения...")

    if settings.SCHEDULER_ENABLED:
        stop_scheduler()


Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="API партнерских ссылок, аналитики кликов и YouTube-ленты",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(links.router)
app.include_router(categories.router)
app.include_router(analytics.router)
app.include_router(youtube.router)


API_PREFIXES = ("/links", "/go", "/categories", "/analytics", "/youtube")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    if request.url.path.startswith(API_PREFIXES):
        logger.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.4f}s")

    return response


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "Creator Hub API",
        "docs_url": "/docs",
        "version": "1.0.0"
    }


if __name__ == "__main__":
    uvicorn.run("hub.main:app", host="0.0.0.0", port=8000, reload=True)
