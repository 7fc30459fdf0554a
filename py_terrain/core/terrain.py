"""
Terrain: the rendering-side owner of generated heights.

Terrain pairs a GenerationScheduler with two TextureSinks. When a run
completes it uploads the scheduler's active buffer into the inactive
texture, swaps the active texture and then tells its caller that new
heights are ready, the same hand-off the viewer performs before rebuilding
mesh positions and normals. Readers only ever see a fully uploaded texture.
"""

import threading
from typing import Callable, Dict, NamedTuple, Optional

import numpy as np
import structlog

from .geometry import Box, Size
from .scheduler import GenerationHandle, GenerationScheduler
from .sink import TextureSink
from ..utils.random import Seed

logger = structlog.get_logger()

# Needs to be 2^n + 1 on each side.
DEFAULT_TEXTURE_SIZE = 129


class TextureSnapshot(NamedTuple):
    """Copy of the active texture and the generation it holds."""

    generation: int
    width: int
    height: int
    pixels: np.ndarray

    def statistics(self) -> Dict[str, float]:
        return {
            "min": float(np.min(self.pixels)),
            "max": float(np.max(self.pixels)),
            "mean": float(np.mean(self.pixels)),
            "std": float(np.std(self.pixels)),
        }


class Terrain:
    """Height texture kept up to date by background diamond-square runs."""

    name = "Diamond-Square"
    needs_gpu = False

    def __init__(self, size: int = DEFAULT_TEXTURE_SIZE, roughness: float = 1.0, seed: Seed = None):
        self.size = Size(size, size)
        self.scheduler = GenerationScheduler(Box.grid(size, size), roughness=roughness, seed=seed)
        self._textures = [TextureSink(size, size), TextureSink(size, size)]
        self._active = 0
        self._generations = [0, 0]
        self._texture_lock = threading.Lock()

    @property
    def texture(self) -> TextureSink:
        """
        The texture holding the most recently uploaded heights.

        Its pixels are rewritten two uploads later; use snapshot() for a
        stable copy.
        """
        with self._texture_lock:
            return self._textures[self._active]

    @property
    def uploaded_generation(self) -> int:
        with self._texture_lock:
            return self._generations[self._active]

    @property
    def roughness(self) -> float:
        return self.scheduler.roughness

    @roughness.setter
    def roughness(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"Roughness must be non-negative, got {value}")
        self.scheduler.roughness = value

    def generate(
        self,
        completion: Optional[Callable[[GenerationHandle], None]] = None,
        roughness: Optional[float] = None,
        seed: Seed = None,
    ) -> Optional[GenerationHandle]:
        """
        Regenerate the terrain in the background.

        Returns:
            Handle for the run, or None while a previous run is still going
        """

        def on_complete(handle: GenerationHandle) -> None:
            self._upload()
            logger.info(
                "Uploaded heights to texture",
                run_id=handle.run_id,
                generation=self.uploaded_generation,
            )
            if completion is not None:
                completion(handle)

        handle = self.scheduler.request_generation(roughness=roughness, on_complete=on_complete, seed=seed)
        if handle is None:
            logger.info("Terrain regeneration skipped, generator busy")
        return handle

    def _upload(self) -> None:
        # Uploads run one at a time on the scheduler's worker, and readers
        # only touch the active texture, so the inactive one is filled unlocked.
        with self._texture_lock:
            inactive = 1 - self._active
        generation = self.scheduler.copy_active_to(self._textures[inactive])
        with self._texture_lock:
            self._generations[inactive] = generation
            self._active = inactive

    def snapshot(self) -> TextureSnapshot:
        """Consistent copy of the active texture and its generation."""
        with self._texture_lock:
            texture = self._textures[self._active]
            return TextureSnapshot(
                generation=self._generations[self._active],
                width=texture.width,
                height=texture.height,
                pixels=texture.pixels.copy(),
            )

    def statistics(self) -> Dict[str, float]:
        return self.snapshot().statistics()

    def close(self) -> None:
        self.scheduler.shutdown(wait=True)
