import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from cms.config import settings
from cms.exceptions import CMSError, NotFoundError
from cms.logging_config import configure_logging
from cms.metrics import metrics_endpoint
from cms.middleware.logging_middleware import RequestLoggingMiddleware
from cms.routers import articles, tags
from cms.worker.trending_worker import trending_worker_loop

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure structured logging before anything else
    configure_logging()

    app.state.trending_worker_task = None
    if settings.trending_refresh_interval_minutes > 0:
        app.state.trending_worker_task = asyncio.create_task(trending_worker_loop())
    try:
        yield
    finally:
        if app.state.trending_worker_task is not None:
            app.state.trending_worker_task.cancel()


app = FastAPI(title=f"{settings.app_name} API", version="0.1.0", lifespan=lifespan)

# Register request logging middleware (runs on every request)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(articles.router)
app.include_router(tags.router)

# Prometheus metrics endpoint
app.get("/metrics")(metrics_endpoint)


@app.exception_handler(CMSError)
async def cms_error_handler(request: Request, exc: CMSError) -> JSONResponse:
    status_code = 404 if isinstance(exc, NotFoundError) else 400
    log.warning(
        "cms_error",
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.__class__.__name__, "message": exc.message, "details": exc.details},
    )


@app.get("/health")
async def health_check(response: Response):
    """Health check: verifies database connectivity and the trending worker.

    Returns 200 if all components are healthy, 503 if any component is unhealthy.
    A disabled worker (interval 0) counts as healthy.
    """
    from cms.database import async_session_factory
    from sqlalchemy import text

    checks = {}
    overall_healthy = True

    try:
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except Exception as e:
        checks["database"] = {"status": "unhealthy", "error": str(e)}
        overall_healthy = False

    worker = getattr(app.state, "trending_worker_task", None)
    if worker is None:
        checks["trending_worker"] = {"status": "disabled"}
    elif worker.done() or worker.cancelled():
        checks["trending_worker"] = {
            "status": "unhealthy",
            "error": "Worker task stopped",
        }
        overall_healthy = False
    else:
        checks["trending_worker"] = {"status": "healthy"}

    response.status_code = 200 if overall_healthy else 503
    return {"status": "healthy" if overall_healthy else "unhealthy", "checks": checks}
