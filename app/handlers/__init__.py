"""Handlers package."""
from app.handlers.restaurant_handler import RestaurantHandler

__all__ = ["RestaurantHandler"]
