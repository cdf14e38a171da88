"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ground_truth_curator import __version__
from ground_truth_curator.api.datasets import router as datasets_router
from ground_truth_curator.api.health import router as health_router
from ground_truth_curator.config import settings

app = FastAPI(
    title=settings.APP_NAME,
    description="Curate ground-truth Q&A entries and legal documents for evaluation datasets",
    version=__version__,
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for now, restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(datasets_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic application info."""
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs",
        "storage_backend": settings.storage_backend,
        "streamlit_ui": "Run: streamlit run src/ground_truth_curator/web/streamlit_app.py",
    }
