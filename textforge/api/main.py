"""textforge API.

Exposes the transformation engine and the definition catalog over HTTP.
Authentication and authorization are handled in front of this service.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from textforge import __version__
from textforge.api.routes import transformations
from textforge.engine import get_transformation_engine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Loading transformation definitions...")
    engine = get_transformation_engine()
    logger.info(f"Loaded {len(engine.available_names())} transformations")
    yield
    logger.info("Shutting down textforge API")


app = FastAPI(
    title="textforge API",
    description="Declarative text transformations from YAML files and the "
    "definitions database.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(transformations.router)


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
