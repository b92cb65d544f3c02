"""
Session API for dyn-form.

Starlette app driving FormSessions over JSON, served with uvicorn.
"""

from dyn_form.api.server import create_app, run_server

__all__ = [
    "create_app",
    "run_server",
]
