"""
Backend entry point.

This is the main entry point for running the FastAPI application.
Run with: uvicorn main:app --reload
"""
import uvicorn

from annotations_rw.api.main import app
from annotations_rw.core.config import settings

__all__ = ["app"]


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
