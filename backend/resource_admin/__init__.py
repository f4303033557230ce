"""
Resource admin: a generic administrative resource-management layer.
"""

__version__ = "0.1.0"
