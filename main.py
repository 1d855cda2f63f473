from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import CORS_ORIGINS
from app.core.db import init_models
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import setup_logging
from app.routers import auth
from app.routers import loyalty
from app.middleware.activity_logger import ActivityLoggerMiddleware

logger = setup_logging()

app = FastAPI(
    title="Table Loyalty API",
    description="FastAPI backend for QR table loyalty points and leaderboard",
    version="0.1.0"
)
# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ActivityLoggerMiddleware)

register_exception_handlers(app)

# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "ok", "message": "Backend is running"}

# Register routers
app.include_router(auth.router)
app.include_router(loyalty.router)


@app.on_event("startup")
async def on_startup():
    await init_models()
    logger.info("Database tables ready")
