from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.logging_config import get_logger, setup_logging
from app.routers import sessions, webhooks

setup_logging()

logger = get_logger("main")

app = FastAPI(
    title=settings.app_name,
    description="Multi-platform chat bot gateway",
    version="0.1.0",
)

app.include_router(webhooks.router)
app.include_router(sessions.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error: {exc}",
        exc_info=exc,
        extra={"context": {"path": request.url.path, "method": request.method}},
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
async def health():
    return {"status": "ok"}
