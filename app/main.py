"""
Boxing Locker API
AI coach chat, coaching plans, voice sessions and the video library
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import chat, coach, videos, voice, health
from app.core.config import settings
from app.core.database import engine
from app.models import Base
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.error_handling import ErrorHandlingMiddleware
import logging

app = FastAPI(
    title="Boxing Locker API",
    description="AI boxing coach, coaching plans and video library",
    version="1.0.0"
)

# Configure logging
logging.basicConfig(
    level=getattr(settings, 'log_level', 'INFO'),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@app.on_event("startup")
async def startup_event():
    """Create database tables and report provider configuration"""
    try:
        logging.info("Starting database initialization...")

        if not settings.openrouter_api_key:
            logging.warning(
                "OpenRouter API key is not configured. "
                "Chat and coaching endpoints will not work until OPENROUTER_API_KEY is set."
            )
        if not settings.google_api_key:
            logging.warning("Google API key is not configured. Voice sessions are disabled.")

        Base.metadata.create_all(bind=engine)
        logging.info("Database tables created successfully")
    except Exception as e:
        logging.error(f"Database initialization failed: {str(e)}")
        raise RuntimeError(f"Failed to initialize database: {str(e)}")

# Add middleware (order matters - last added is first executed)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

# Include routers
app.include_router(chat.router, prefix="/api", tags=["chat"])
app.include_router(coach.router, prefix="/api", tags=["coach"])
app.include_router(videos.router, prefix="/api", tags=["videos"])
app.include_router(voice.router, prefix="/api", tags=["voice"])
app.include_router(health.router, tags=["health"])


@app.get("/")
async def root():
    return {"message": "Boxing Locker API is running"}
