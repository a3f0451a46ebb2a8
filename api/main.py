"""FastAPI application for serving X-band mesh rainfall time series."""

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import series
from pipeline.config import load_config, log_level

logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(message)s")

app = FastAPI(title="X-band Mesh Series API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(series.router)


@app.get("/health")
def health():
    """Health check endpoint.

    Also reports whether the configured data directory is there, since every
    /series request depends on it.
    """
    data_dir = Path(load_config().data_dir)
    return {"ok": True, "data_dir_available": data_dir.is_dir()}
