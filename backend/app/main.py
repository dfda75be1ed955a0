# backend/app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.auth_routes import router as auth_router
from app.api.routes import router as api_router
from app.api.user_routes import functions_router, router as users_router
from app.core.config import settings
from app.core.database import Base, SessionLocal, engine
from app.core.errors import AuthError, InventoryError
from app.core.logging_config import configure_logging, get_logger
from app.core.seed import seed_users_if_empty

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)

    # migrations own the schema outside dev
    if settings.app_env == "dev":
        Base.metadata.create_all(bind=engine)

    if settings.seed_default_users:
        db = SessionLocal()
        try:
            seed_users_if_empty(db)
        finally:
            db.close()

    logger.info("startup", extra={"app_env": settings.app_env})
    yield
    logger.info("shutdown")


app = FastAPI(title="Lumina Inventory API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    if exc.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "code": exc.code, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(api_router, prefix="/api")
app.include_router(users_router, prefix="/api", tags=["users"])
app.include_router(functions_router, prefix="/api/functions", tags=["functions"])


@app.get("/health")
def health():
    return {"status": "ok"}
