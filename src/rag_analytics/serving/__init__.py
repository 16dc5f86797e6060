"""
Serving — FastAPI application for the query service.

The app is built around an already-wired service; the CLI runs the
ingestion phase first and then hands the app to uvicorn.
"""

from rag_analytics.serving.app import create_app

__all__ = ["create_app"]
