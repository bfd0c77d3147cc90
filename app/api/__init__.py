"""
API Layer - FastAPI routes and middleware.

Routers live in app.api.routes and are mounted by app.main.create_app.
"""
