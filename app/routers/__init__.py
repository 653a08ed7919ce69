"""
FastAPI routers for the shorts generator.
"""

from app.routers import health, shorts

__all__ = ["health", "shorts"]
