#!/usr/bin/env python3

import logging
import os

import uvicorn

from planning_dashboard.api import app

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    host = os.getenv("PLANNING_API_HOST", "127.0.0.1")
    port = int(os.getenv("PLANNING_API_PORT", "8000"))
    logger.info(f"🚀 Starting Planning Dashboard API on {host}:{port}")
    uvicorn.run(app, host=host, port=port)
