# Run from project root: uvicorn drivesearch.main:app --reload

import logging

from fastapi import FastAPI

from drivesearch.api.routes import router
from drivesearch.core.config import LOG_LEVEL
from drivesearch.mcp.server import mcp_router

logging.basicConfig(level=LOG_LEVEL)


app = FastAPI(title="Drive Library Search")
app.include_router(router)
app.include_router(mcp_router, prefix="/mcp")
