"""
issuehub HTTP boundary.
"""

from .app import create_app
from .container import Container

__all__ = ["create_app", "Container"]
