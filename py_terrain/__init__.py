"""
py-terrain: diamond-square terrain generation with background regeneration.
"""

__version__ = "0.1.0"
