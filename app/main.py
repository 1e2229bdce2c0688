from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.core.config import settings
from app.core.database import engine, Base
from app.core.exceptions import MarketplaceError
from app.core.rate_limit import limiter
from app.routers.auth.auth_router import router as auth_router
from app.routers.nfts.nfts_router import router as nfts_router
from app.routers.bids.bids_router import router as bids_router
from app.routers.transactions.transactions_router import router as transactions_router
from app.routers.deposits.deposits_router import router as deposits_router
from app.routers.exchange.exchange_router import router as exchange_router
from app.routers.profile.profile_router import router as profile_router
from app.routers.admin.admin_router import router as admin_router

# Import models to ensure they are registered with SQLAlchemy
from app import models  # noqa: F401

logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="NFT storefront: catalogue, bids, purchases and wallet balances",
    version=settings.APP_VERSION
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error bodies are always {"message": ...}
@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Include routers
app.include_router(auth_router, prefix="/api/auth", tags=["authentication"])
app.include_router(nfts_router, prefix="/api/nfts", tags=["nfts"])
app.include_router(bids_router, prefix="/api/bids", tags=["bids"])
app.include_router(transactions_router, prefix="/api/transactions", tags=["transactions"])
app.include_router(deposits_router, prefix="/api/deposits", tags=["deposits"])
app.include_router(exchange_router, prefix="/api/exchange", tags=["exchange"])
app.include_router(profile_router, prefix="/api/profile", tags=["profile"])
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])


@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


@app.get("/health")
def health_check():
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        db_status = "error"

    return {"status": "healthy", "database": db_status, "version": settings.APP_VERSION}
