"""
Mint backend package: Flask JSON API on top of mint_core and mint_database.
"""

from .app import app, create_app

__all__ = ['app', 'create_app']
