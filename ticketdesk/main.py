"""
TicketDesk - FastAPI Backend
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ticketdesk import __version__
from ticketdesk.config import get_settings
from ticketdesk.exceptions import (
    Conflict,
    IdentifierExhausted,
    IntegrationDisabled,
    NotFound,
    RemoteError,
    TicketDeskError,
    ValidationError,
)
from ticketdesk.middleware.logging_middleware import LoggingMiddleware
from ticketdesk.routes import sync, tickets
from ticketdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

app = FastAPI(
    title="TicketDesk",
    description="Support ticket lifecycle with Freshdesk reconciliation",
    version=__version__
)

app.add_middleware(LoggingMiddleware)

app.include_router(tickets.router)
app.include_router(sync.router)

# Domain error -> HTTP status
ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFound: 404,
    Conflict: 409,
    RemoteError: 502,
    IdentifierExhausted: 503,
    IntegrationDisabled: 503,
}


@app.exception_handler(TicketDeskError)
async def ticketdesk_error_handler(request: Request, exc: TicketDeskError):
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)}
    )


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": __version__,
        "freshdesk_enabled": settings.freshdesk_enabled
    }


@app.get("/")
async def root():
    return {"message": "TicketDesk API", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.fastapi_host, port=settings.fastapi_port)
