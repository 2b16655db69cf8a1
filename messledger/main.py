"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from messledger.config import get_settings
from messledger.infrastructure.db.session import check_db_connection
from messledger.api.v1 import reports, ledger

logging.basicConfig(level=get_settings().LOG_LEVEL)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Log any unhandled exception with its traceback and answer 500"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error("\n%s\nERROR on %s %s\n%s%s", "=" * 60, request.method, request.url.path, tb_str, "=" * 60)
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def create_app() -> FastAPI:
    """
    Application factory: build and configure the FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="messledger",
        debug=settings.DEBUG,
    )

    app.add_middleware(ErrorLoggingMiddleware)

    app.include_router(reports.router)
    app.include_router(ledger.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "messledger.main:app",
        host="127.0.0.1",
        port=8000,
        reload=get_settings().DEBUG,
    )
