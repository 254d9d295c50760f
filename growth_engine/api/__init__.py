"""HTTP surface for the growth engine."""

from .server import create_app

__all__ = ['create_app']
