"""
Meme Generator Backend - Main Application Entry Point.

This FastAPI application turns a prompt into a captioned meme image:
1. Ollama image model - generates the picture
2. Ollama text model - writes top/bottom captions
3. Pillow - draws the captions onto the picture

Generated images are stored in the output directory and served from /images.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from memegen.config import get_settings
from memegen.routes.images import router as images_router
from memegen.routes.meme import router as meme_router

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

# Configure logging format
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    os.makedirs(settings.OUTPUT_DIR, exist_ok=True)

    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Model command: {settings.OLLAMA_COMMAND}")
    logger.info(f"Image model: {settings.IMAGE_MODEL}, text model: {settings.TEXT_MODEL}")
    logger.info(f"Output directory: {os.path.abspath(settings.OUTPUT_DIR)}")
    logger.info(f"Database: {os.path.abspath(settings.DB_PATH)}")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    if not os.path.isfile(settings.FONT_PATH):
        logger.warning(
            f"Font {settings.FONT_PATH} not found. "
            f"Captions will use Pillow's built-in font."
        )
    if not settings.MODEL_TIMEOUT:
        logger.warning("MODEL_TIMEOUT is disabled; a hung model process will hang its request.")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Application shutdown")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

# Get settings for app configuration
settings = get_settings()

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Meme Generator Backend

Turns a prompt into a captioned meme image using local Ollama models.

### Flow

1. **Image model** generates the picture from the prompt (with the system prompt prepended)
2. **Text model** writes top and bottom captions as JSON
3. **Backend** draws the captions onto the picture and stores the result

### Key Endpoints

- `POST /api/v1/generations` - Generate a meme
- `GET /api/v1/generations` - Recent generations
- `GET /api/v1/generations/{id}` - One generation
- `GET|PUT /api/v1/settings/system-prompt` - System prompt
- `GET /images/{filename}` - Generated image
- `GET /api/v1/health` - Health check
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE
# =============================================================================

# Add CORS middleware to allow frontend requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROUTES
# =============================================================================

app.include_router(meme_router)
app.include_router(images_router)


# Root endpoint
@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - points to the API documentation."""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
    }


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def run():
    """Run the application with uvicorn."""
    import uvicorn

    # In production, use: uvicorn memegen.main:app --host 0.0.0.0 --port 8000
    uvicorn.run(
        "memegen.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
