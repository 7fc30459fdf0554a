"""
Output sink adapter.

This is the one place where generated heights cross into storage owned by
the rendering side. A sink is any object with

    replace_region(width, height, data, bytes_per_row)

mirroring a GPU texture's region upload. `TextureSink` is the in-memory
implementation used by the terrain facade and the API.
"""

import numpy as np
import structlog

logger = structlog.get_logger()

FLOAT_STRIDE = np.dtype(np.float32).itemsize


def copy_to_sink(heights: np.ndarray, width: int, height: int, sink) -> None:
    """
    Copy a finished row-major height array into `sink`.

    Args:
        heights: Flat float array of length width * height
        width: Grid width in points
        height: Grid height in points
        sink: Destination implementing replace_region()

    Raises:
        ValueError: If the array length does not match the dimensions
    """
    data = np.ascontiguousarray(heights, dtype=np.float32).reshape(-1)
    if data.size != width * height:
        raise ValueError(
            f"Height array has {data.size} values, expected {width * height} for {width}x{height}"
        )
    sink.replace_region(width, height, data, FLOAT_STRIDE * width)


class TextureSink:
    """Single-channel float32 texture held in host memory."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.pixels = np.zeros((height, width), dtype=np.float32)
        self.upload_count = 0

    def replace_region(self, width: int, height: int, data: np.ndarray, bytes_per_row: int) -> None:
        if (width, height) != (self.width, self.height):
            raise ValueError(
                f"Region {width}x{height} does not match texture {self.width}x{self.height}"
            )
        if bytes_per_row != FLOAT_STRIDE * width:
            raise ValueError(f"Unexpected row pitch {bytes_per_row} for width {width}")

        np.copyto(self.pixels, data.reshape(height, width))
        self.upload_count += 1
        logger.debug("Texture region replaced", width=width, height=height, uploads=self.upload_count)

    def to_list(self):
        """Row-major flat list, as served over the API."""
        return self.pixels.reshape(-1).tolist()
