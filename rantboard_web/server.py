"""
HTTP server for Rantboard.

Run with: python -m rantboard_web.server
Or: uvicorn rantboard_web.server:app
"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from rantboard.config import get_listen_addr
from rantboard.database import init_db
from rantboard.errors import BoardError
from rantboard_web.responses import Outcome, Views, router
from rantboard_web.routes import register_all_routes

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging for the server process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def parse_listen_addr(addr: str) -> Tuple[str, int]:
    """Split "host:port" (or ":port") into host and port."""
    host, _, port = addr.rpartition(":")
    if not port.isdigit():
        raise ValueError(f"Invalid listen address '{addr}'. Expected host:port")
    return host or "0.0.0.0", int(port)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


async def log_request_status(request: Request, call_next):
    """Log method, path, status and duration for every request."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %d (%.1fms)", request.method, request.url.path,
                response.status_code, elapsed_ms)
    return response


async def board_error_handler(request: Request, exc: BoardError):
    """Errors raised outside run_operation (e.g. by the hard gate) still go through the router."""
    return router.respond(request, Outcome.failure(exc), Views())


def create_app() -> FastAPI:
    """Build the FastAPI application with all routes registered."""
    app = FastAPI(
        title="Rantboard",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.middleware("http")(log_request_status)
    app.add_exception_handler(BoardError, board_error_handler)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    register_all_routes(app)
    return app


app = create_app()


def main():
    """Entry point for script installation."""
    configure_logging()
    host, port = parse_listen_addr(get_listen_addr())
    logger.info("Rantboard listening on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
