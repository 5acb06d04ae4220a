"""
Simple script to run the FastAPI land registry service.
Usage: python run.py
"""
import logging
import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    port = int(os.getenv("PORT", "4000"))
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Only watch the package sources
    uvicorn.run(
        "landregistry.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        reload_dirs=["src"],
        reload_excludes=["venv/**", "*.pyc", "__pycache__/**"],
        app_dir="src"
    )
