"""
Routers package for the Integration Gateway

Contains FastAPI routers and their associated models:
- integrations: integration health and operator actions
- models: API response models
"""

from .integrations import integrations_router

__all__ = [
    "integrations_router",
]
