import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.routers import trips, itinerary, ideas
from app.config import settings, cloud_config
from app.services.itinerary_store import PersistenceError
from app.services.sequencer import DragStateError

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Trip Planner API",
    version="0.1.0",
    description="Trips, day-by-day itineraries and an ideas backlog with drag-and-drop scheduling"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins if not cloud_config.IS_CLOUD_RUN else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(trips.router, prefix="/api/v1")
app.include_router(itinerary.router, prefix="/api/v1")
app.include_router(ideas.router, prefix="/api/v1")


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"Persistence failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"status": "error", "message": "Storage backend unavailable", "details": {"cause": str(exc)}})


@app.exception_handler(DragStateError)
async def drag_state_error_handler(request: Request, exc: DragStateError):
    return JSONResponse(status_code=409, content={"status": "error", "message": str(exc)})


@app.get("/health")
def health_check():
    """Health check endpoint for Cloud Run and monitoring"""
    return {
        "status": "ok",
        "message": "Trip Planner API is running",
        "environment": "cloud-run" if cloud_config.IS_CLOUD_RUN else "local",
        "project_id": cloud_config.PROJECT_ID if cloud_config.IS_CLOUD_RUN else "local"
    }

@app.get("/")
def root():
    """Root endpoint with API information"""
    return {
        "name": "Trip Planner API",
        "version": "0.1.0",
        "docs_url": "/docs",
        "health_url": "/health"
    }

# For Cloud Run, the port is set via environment variable
if __name__ == "__main__":
    import uvicorn
    port = cloud_config.PORT if cloud_config.IS_CLOUD_RUN else settings.port
    uvicorn.run(app, host="0.0.0.0", port=port)
