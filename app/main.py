import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.cache import cache
from app.config import settings
from app.middleware import TimingMiddleware
from app.routers import metrics, pages, posts, users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the app keeps serving, uncached, without Redis.
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Cache unavailable, continuing without it: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="Learn API",
    description="Posts, likes and comments for a social-learning community",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(posts.router)
app.include_router(users.router)
app.include_router(metrics.router)
app.include_router(pages.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
