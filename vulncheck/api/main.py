from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from .config import settings
from ..errors import (
    AuthError,
    ForbiddenError,
    InsufficientCreditsError,
    InvalidReferenceError,
    NotFoundError,
    ScanStateError,
    TransportError,
    VulnCheckError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="VulnCheck",
    description="AI-assisted security review of GitHub repositories.",
    version="1.0.0"
)

from .database import engine
from . import models

# Create database tables
models.Base.metadata.create_all(bind=engine)

from .routers import sessions, credits

app.include_router(sessions.router)
app.include_router(credits.router)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = (
    (InvalidReferenceError, 400),
    (AuthError, 401),
    (InsufficientCreditsError, 402),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ScanStateError, 409),
    (TransportError, 502),
)


def status_for(exc: VulnCheckError) -> int:
    for error_cls, status_code in ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status_code
    return 500


@app.exception_handler(VulnCheckError)
async def vulncheck_error_handler(request: Request, exc: VulnCheckError):
    status_code = status_for(exc)
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.user_message, "error": type(exc).__name__}
    )

@app.get("/")
async def root():
    return {
        "message": "Welcome to the VulnCheck API",
        "docs": "/docs",
        "version": "1.0.0"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
