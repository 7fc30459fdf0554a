"""
Random number generation utilities.

Generation runs draw from a NumPy Generator. Seeds may be given as strings
(as they arrive from settings or the API) and are hashed to a stable integer
so the same seed reproduces the same terrain on every platform.
"""

import hashlib
from typing import Optional, Union

import numpy as np

Seed = Union[str, int, None]


def seed_to_int(seed: Union[str, int]) -> int:
    """
    Convert a seed to a non-negative integer for NumPy's SeedSequence.

    Integers pass through unchanged; strings are hashed with SHA-256.
    """
    if isinstance(seed, int):
        if seed < 0:
            raise ValueError("Integer seeds must be non-negative")
        return seed
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def create_rng(seed: Seed = None) -> np.random.Generator:
    """
    Create a random source for one generation run.

    Args:
        seed: Optional seed; None draws fresh OS entropy

    Returns:
        NumPy Generator, whose uniform(low, high) the algorithm calls
    """
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng(seed_to_int(seed))


def normalize_seed(seed: Optional[str]) -> Optional[str]:
    """Treat blank seeds from forms and environment files as unset."""
    if seed is None:
        return None
    seed = seed.strip()
    return seed or None
