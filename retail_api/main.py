from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import logging

# Import database components
from retail_api.database.database import engine, Base

# Import middleware
from retail_api.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from retail_api.common.exceptions import RetailAPIError, InvalidTransactionError, ReconciliationError
from retail_api.common.schemas import ErrorResponse

# Import routers
from retail_api.modules.transactions.router import transactions_router
from retail_api.modules.distributions.router import distributions_router

# Import models for table creation
import retail_api.modules.transactions.models
import retail_api.modules.distributions.models

from retail_api.core.api_config import api_url, client_protocol
from retail_api.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Retail POS API",
    description="Point-of-sale backend: sales transactions and cashier stock distributions",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(transactions_router)
app.include_router(distributions_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT in ("development", "test"):
    Base.metadata.create_all(bind=engine)


# ===== ERROR HANDLERS =====

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(RetailAPIError)
async def retail_api_error_handler(request: Request, exc: RetailAPIError):
    if isinstance(exc, ReconciliationError):
        logger.error(f"Transaction {exc.transaction_id} persisted but distributions were not updated")
    elif not isinstance(exc, InvalidTransactionError):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    in_body = any(error.get("loc", ("",))[0] == "body" for error in exc.errors())
    logger.info(f"Invalid request to {request.url.path}: {exc.errors()}")
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request body" if in_body else "Invalid query parameters"
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.get("/")
async def read_root(request: Request):
    # A file:// desktop shell only shows up in the Origin header
    protocol = client_protocol(request.headers.get("origin"), request.url.scheme)
    return {
        "message": "Retail POS API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "transactions": api_url("/transactions", protocol),
            "distributions": api_url("/distributions", protocol),
        }
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("Retail POS API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Retail POS API shutting down...")
