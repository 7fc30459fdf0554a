"""
Configuration for terrain generation and the viewer API.
"""

from .config import Settings, settings

__all__ = ['Settings', 'settings']
