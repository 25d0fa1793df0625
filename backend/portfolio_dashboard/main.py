"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolio_dashboard.api.auth_routes import router as auth_router
from portfolio_dashboard.api.portfolio_routes import router as portfolio_router
from portfolio_dashboard.errors import AuthenticationError, PortfolioFetchError
from portfolio_dashboard.logging_setup import setup_logging
from portfolio_dashboard.services.container import reset_services
from portfolio_dashboard.services.dashboard import LOAD_ERROR_MESSAGE
from portfolio_dashboard.services.supabase import close_supabase_client, get_supabase_client
from portfolio_dashboard.tasks.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Fails startup with ConfigurationError when Supabase settings are missing
    get_supabase_client()
    start_scheduler()
    logger.info("Portfolio dashboard started")
    yield
    stop_scheduler()
    await close_supabase_client()
    reset_services()


app = FastAPI(title="Portfolio Dashboard", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(portfolio_router)


@app.exception_handler(PortfolioFetchError)
async def portfolio_fetch_error_handler(request: Request, exc: PortfolioFetchError):
    return JSONResponse(
        status_code=502, content={"detail": LOAD_ERROR_MESSAGE, "retryable": True}
    )


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=401,
        content={"detail": str(exc) or "Not authenticated"},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}
