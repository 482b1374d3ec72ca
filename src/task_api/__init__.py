"""
FastAPI Task Tracker package.

Serve with an ASGI server using the app factory, e.g.:
    uvicorn task_api.main:create_app --factory
"""

from .main import create_app  # noqa: F401
