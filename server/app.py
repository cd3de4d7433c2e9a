"""FastAPI application for editing flows and following their executions."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.draft_routes import router as draft_router
from server.execution_routes import router as execution_router
from server.db import init_all
from server.draft_db import DRAFT_DB_PATH

from dotenv import load_dotenv
load_dotenv()  # load environment variables from .env file

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# CORS origins - configurable via environment variable
# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database tables on startup."""
    init_all()
    yield


app = FastAPI(
    title="Nurture Flows Editor API",
    description="API server for authoring nurturing flows and tracking their executions",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(draft_router, prefix="/api")
app.include_router(execution_router, prefix="/api")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "0.1.0",
        "draft_db": str(DRAFT_DB_PATH),
        "endpoints": {
            "drafts": "/api/drafts",
            "execution_state": "/api/flows/{flow_id}/execution-state",
            "execution_overlay": "/api/flows/{flow_id}/executions/{execution_id}/overlay",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
