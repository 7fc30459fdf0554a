"""FastAPI viewer service."""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import structlog
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import settings
from ..core.terrain import Terrain

# Configure logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

terrain: Optional[Terrain] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the terrain on startup and stop its worker on shutdown."""
    global terrain
    logger.info("Starting terrain viewer API", grid_size=settings.grid_size)
    terrain = Terrain(size=settings.grid_size, roughness=settings.roughness, seed=settings.seed)
    logger.info("API startup complete")
    yield
    logger.info("Shutting down terrain viewer API")
    terrain.close()
    terrain = None


# Initialize FastAPI app
app = FastAPI(
    title="Terrain Viewer API",
    description="Diamond-square terrain generation with background regeneration",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class GenerationRequest(BaseModel):
    """Request to regenerate the terrain."""

    roughness: Optional[float] = Field(None, ge=0.0, description="Initial random amplitude")
    seed: Optional[str] = Field(None, description="Seed for reproducible terrain")


class GenerationResponse(BaseModel):
    """Response describing an accepted generation run."""

    run_id: int
    status: str
    progress_percent: int
    message: str


class ProgressResponse(BaseModel):
    """Progress of the most recent generation run."""

    run_id: Optional[int] = None
    status: str
    progress_percent: int
    completed_units: int
    total_units: int
    generation: int


class HeightsResponse(BaseModel):
    """Heights currently uploaded to the terrain texture."""

    width: int
    height: int
    generation: int
    heights: List[float]


class TerrainStatistics(BaseModel):
    """Summary statistics of the uploaded heights."""

    generation: int
    min: float
    max: float
    mean: float
    std: float


def get_terrain() -> Terrain:
    if terrain is None:
        raise HTTPException(status_code=503, detail="Terrain not initialized")
    return terrain


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Terrain Viewer API",
        "version": "0.1.0",
        "status": "running",
        "algorithm": Terrain.name,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    current = get_terrain()
    return {"status": "healthy", "generator_busy": current.scheduler.is_busy}


@app.post("/terrain/generate", response_model=GenerationResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_terrain(request: GenerationRequest):
    """
    Start regenerating the terrain.

    Returns immediately. Use /terrain/progress to follow the run.
    """
    logger.info("Terrain generation requested", request=request.model_dump())
    current = get_terrain()

    handle = current.generate(roughness=request.roughness, seed=request.seed)
    if handle is None:
        raise HTTPException(status_code=409, detail="Terrain generation already in progress")

    return GenerationResponse(
        run_id=handle.run_id,
        status="running",
        progress_percent=handle.progress.percent,
        message="Terrain generation started",
    )


@app.get("/terrain/progress", response_model=ProgressResponse)
async def get_progress():
    """Get progress of the most recent generation run."""
    current = get_terrain()
    handle = current.scheduler.current

    if handle is None:
        return ProgressResponse(
            status="idle",
            progress_percent=0,
            completed_units=0,
            total_units=0,
            generation=current.uploaded_generation,
        )

    snapshot = handle.progress
    return ProgressResponse(
        run_id=handle.run_id,
        status=handle.status,
        progress_percent=snapshot.percent,
        completed_units=snapshot.completed_units,
        total_units=snapshot.total_units,
        generation=current.uploaded_generation,
    )


@app.get("/terrain/heights", response_model=HeightsResponse)
async def get_heights():
    """Get the heights currently uploaded to the terrain texture."""
    snapshot = get_terrain().snapshot()
    return HeightsResponse(
        width=snapshot.width,
        height=snapshot.height,
        generation=snapshot.generation,
        heights=snapshot.pixels.reshape(-1).tolist(),
    )


@app.get("/terrain/statistics", response_model=TerrainStatistics)
async def get_statistics():
    """Get summary statistics for the uploaded heights."""
    snapshot = get_terrain().snapshot()
    return TerrainStatistics(generation=snapshot.generation, **snapshot.statistics())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
