"""
Middleware for the Grihome API.
"""

from .validation import ValidationMiddleware

__all__ = ["ValidationMiddleware"]
