"""
Application wiring.
"""

from resource_admin.core.lifespan import lifespan

__all__ = ["lifespan"]
