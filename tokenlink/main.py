from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, mentions, resolve
from .config import settings
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .services.token_identity import get_token_identity_service

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await get_token_identity_service().provider.close()


# Create FastAPI app
app = FastAPI(
    title="tokenlink",
    description="Links KOL token mentions to canonical on-chain tokens",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(resolve.router, tags=["Resolve"])
app.include_router(mentions.router, tags=["Mentions"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "tokenlink",
        "version": "0.1.0",
        "description": "Links KOL token mentions to canonical on-chain tokens",
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tokenlink.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
