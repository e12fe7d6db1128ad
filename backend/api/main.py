"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pathlib import Path
from dotenv import load_dotenv
from starlette.middleware.base import BaseHTTPMiddleware

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import albums, layouts
from services.layout_catalog import get_default_catalog

logger = logging.getLogger(__name__)


class PrivateNetworkAccessMiddleware(BaseHTTPMiddleware):
    """Middleware to handle Private Network Access preflight requests."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=204)
            response.headers["Access-Control-Allow-Origin"] = "*"
            response.headers["Access-Control-Allow-Methods"] = "*"
            response.headers["Access-Control-Allow-Headers"] = "*"
            response.headers["Access-Control-Allow-Private-Network"] = "true"
            return response

        response = await call_next(request)
        response.headers["Access-Control-Allow-Private-Network"] = "true"
        return response


# Create app
app = FastAPI(
    title="Photobook Layout API",
    description="API for laying out photos onto photobook pages",
    version="0.1.0",
)

# Private Network Access middleware (must be before CORS)
app.add_middleware(PrivateNetworkAccessMiddleware)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(albums.router, prefix="/albums", tags=["albums"])
app.include_router(layouts.router, prefix="/layouts", tags=["layouts"])


@app.on_event("startup")
def startup_event():
    """Load the layout catalog once so template errors surface at boot."""
    catalog = get_default_catalog()
    logger.info("[api] layout catalog ready with %s layouts", len(catalog))


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Photobook Layout API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
