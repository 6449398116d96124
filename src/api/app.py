from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.config.settings import settings
from src.core.services.db_service import get_db_service
from src.utils.errors import AppError
from src.utils.logging import logger
from .routes import chat_router

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Create and verify database connection
    db_service = get_db_service()
    if not await db_service.check_health():
        raise RuntimeError("Failed to connect to database")

    yield  # Server is running and handling requests

    # Shutdown: Cleanup
    await db_service.close()

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in err["loc"][1:]) or "body" for err in exc.errors()})
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: check {', '.join(fields)}"}
    )

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Register routers
    app.include_router(chat_router, prefix="/api")

    return app

app = create_app()
