import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from loguru import logger

from app.config.settings import settings
from app.core.logger import setup_logger
from app.scheduling.api import router as schedule_router
from app.scheduling.service import get_undo_manager
from app.scheduling.undo_ticker import UndoTicker

# Initialize logger
setup_logger(level=settings.log_level, log_file=settings.log_file, json_file=settings.log_json)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Run the undo countdown for the lifetime of the app."""
    ticker = UndoTicker(get_undo_manager())
    ticker.start()
    logger.info("[SCHEDULER] Undo countdown running")
    await asyncio.sleep(0)

    yield

    ticker.stop()
    logger.info("[SCHEDULER] Undo countdown stopped")


app = FastAPI(title="Tutor Schedule", lifespan=lifespan)

app.include_router(schedule_router)

logger.info("FastAPI application initialized")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response


@app.get("/", response_class=HTMLResponse)
def root():
    return """
    <html>
        <head>
            <title>Tutor Schedule</title>
        </head>
        <body>
            <h1>Tutor Schedule</h1>
            <p>Session rescheduling and conflict detection</p>
            <h2>Available Endpoints:</h2>
            <ul>
                <li><a href="/docs">API Documentation (Swagger)</a></li>
                <li><a href="/redoc">API Documentation (ReDoc)</a></li>
                <li>POST /schedule/preview</li>
                <li>POST /schedule/conflicts/check</li>
                <li>POST /schedule/slots</li>
            </ul>
        </body>
    </html>
    """
