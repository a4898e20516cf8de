"""
Run the EduKid practice API.

    python main.py
    uvicorn main:app --port 8100
"""
import sys
from pathlib import Path

# Project root must be importable when launched from elsewhere
sys.path.insert(0, str(Path(__file__).parent))

import uvicorn  # noqa: E402

from config import get_settings  # noqa: E402
from src.api.main import app  # noqa: E402, F401

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "src.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
