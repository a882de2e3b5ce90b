#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.
For local development only.
"""
import os
import sys
from pathlib import Path

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

import uvicorn

from app.core.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.app_name} ({settings.environment})")
    print(f"Database: {settings.get_database_url()}")
    print("API Docs: http://localhost:8000/docs")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
