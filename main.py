# main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi_limiter import FastAPILimiter
from redis.exceptions import RedisError
from starlette.middleware.cors import CORSMiddleware
import routes
from config.cache import close_redis, get_redis
from config.settings import settings
from repository.reviewer_repository import ReviewerRepository
from util.constants import PRINCIPAL_ID_HEADER, PRINCIPAL_ROLE_HEADER
from util.enums import Color, Environment
from util.errors import DependencyDegraded
from util.logger import init_logger

logger = logging.getLogger(__name__)

# Uploader plus at least one other reviewer
MIN_REVIEWERS_FOR_QUORUM = 2


async def _real_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _seed_reviewers() -> int:
    """REVIEWER_IDS is the source of truth for the pool; an empty list leaves it as is."""
    reviewers = ReviewerRepository()
    if settings.REVIEWER_IDS:
        added, removed = await reviewers.sync(settings.REVIEWER_IDS)
        logger.info("reviewers.sync added=%d removed=%d", added, removed)
    else:
        logger.warning("reviewers.sync.skipped reason=REVIEWER_IDS empty")
    active = await reviewers.count_active()
    logger.info("reviewers.pool active=%d", active)
    if active < MIN_REVIEWERS_FOR_QUORUM:
        logger.warning(
            "reviewers.pool.too_small active=%d min=%d", active, MIN_REVIEWERS_FOR_QUORUM
        )
    return active


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    try:
        init_logger()
        print(f"{Color.GREEN}Initializing...{Color.RESET}")
        redis = await get_redis()
        await FastAPILimiter.init(redis, identifier=_real_ip)
        await _seed_reviewers()
        print(f"{Color.BLUE}Server Started{Color.RESET}")
    except Exception as e:
        print("Startup failed:", e)
        raise

    try:
        yield
    finally:
        try:
            await close_redis()
        except RedisError as e:
            print("Error closing Redis:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(title="thesis-guard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        PRINCIPAL_ID_HEADER,
        PRINCIPAL_ROLE_HEADER,
    ],
)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.get("/readyz")
async def readyz():
    """Ready when Redis answers and the reviewer pool can form a quorum."""
    try:
        active = await ReviewerRepository().count_active()
    except RedisError as e:
        logger.error("readyz.redis.error reason=%s", e)
        return JSONResponse(status_code=503, content={"ok": False, "error": "redis_unavailable"})
    ready = active >= MIN_REVIEWERS_FOR_QUORUM
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"ok": ready, "activeReviewers": active},
    )


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {settings.RATE_LIMIT_SECONDS}s.",
        },
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


@app.exception_handler(DependencyDegraded)
async def dependency_handler(request: Request, exc: DependencyDegraded):
    # Services degrade on their own; reaching here means an outage escaped them
    logger.error("dependency.unavailable path=%s reason=%s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"ok": False, "error": "dependency_unavailable", "message": str(exc)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
