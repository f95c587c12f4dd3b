"""
BACKEND PACKAGE

Local Flask API used by the desktop shell to reach the TOTP core.
"""

from .app import create_app

__all__ = ['create_app']
