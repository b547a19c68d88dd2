import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog_orders.config import settings, LOG_FORMAT
from catalog_orders.infrastructure.database import create_tables
from catalog_orders.presentation.api import router
from catalog_orders.presentation.schemas import ApiResponse

logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await create_tables()
        logger.info("Database tables ready")
    except Exception as e:
        logger.error(f"Could not create database tables: {e}")
        raise

    yield

    logger.info("Application is shutting down")


app = FastAPI(
    title="Catalog Orders Service",
    description="Product catalog and order management",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
    body = ApiResponse(success=False, message="Validation failed", errors=errors)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=jsonable_encoder(body))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    body = ApiResponse(success=False, message="An unexpected error occurred")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=jsonable_encoder(body))


@app.get("/health")
async def health():
    return {"status": "healthy"}
