"""
Core terrain generation functionality.
"""

from .geometry import Point, Size, Box
from .traversal import Queue, breadth_first_search
from .progress import Progress, ProgressSnapshot
from .height_field import HeightField
from .diamond_square import DiamondSquareAlgorithm, SpreadState, GridSizeError, generate_heights
from .scheduler import GenerationScheduler, GenerationHandle, BufferAllocationError
from .sink import TextureSink, copy_to_sink
from .terrain import Terrain, TextureSnapshot

__all__ = ['Point', 'Size', 'Box', 'Queue', 'breadth_first_search',
           'Progress', 'ProgressSnapshot', 'HeightField',
           'DiamondSquareAlgorithm', 'SpreadState', 'GridSizeError', 'generate_heights',
           'GenerationScheduler', 'GenerationHandle', 'BufferAllocationError',
           'TextureSink', 'copy_to_sink', 'Terrain', 'TextureSnapshot']
