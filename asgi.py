"""
asgi.py -- The deployable CarStore application: JSON API plus web UI.

api/ and web/ never import each other; this module is where they meet. The
API app from api/main.py (middleware, lifespan, /api/v1 routes) gets the
HTML routes from web/routes.py added on top, so both share one app.state.

Serve with:  uvicorn asgi:app
"""

from api.main import app
from web.routes import router as web_router

app.include_router(web_router, tags=["Web UI"])

__all__ = ["app"]
