"""Routers package."""
from app.routers.restaurant_router import router as restaurant_router, set_restaurant_handler

__all__ = ["restaurant_router", "set_restaurant_handler"]
