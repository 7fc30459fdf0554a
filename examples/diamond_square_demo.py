#!/usr/bin/env python3
"""
Simple demo script showing diamond-square generation capabilities.
"""

import numpy as np
from py_terrain.core import Box, DiamondSquareAlgorithm, GenerationScheduler, Progress
from py_terrain.utils.random import create_rng


def print_histogram(heights, bins=8):
    hist, edges = np.histogram(heights, bins=bins)
    print("  Height distribution:")
    for i in range(len(hist)):
        bar = '#' * int(hist[i] / max(hist) * 20)
        print(f"    {edges[i]:6.2f}..{edges[i+1]:6.2f}: {bar} ({hist[i]})")


def main():
    """Demonstrate height field generation."""
    print("Diamond-Square Terrain Demo")
    print("=" * 40)

    # Direct rendering at several roughness values
    for roughness in [0.25, 1.0, 4.0]:
        print(f"\nRoughness {roughness}:")
        print("-" * 30)

        progress = Progress()
        algorithm = DiamondSquareAlgorithm(Box.grid(65, 65), roughness, create_rng("demo"))
        field = algorithm.render(progress)
        heights = field.values

        print(f"  Points: {len(field)} ({progress.completed_units} work units)")
        print(f"  Height range: {np.min(heights):.3f} to {np.max(heights):.3f}")
        print(f"  Mean height: {np.mean(heights):.3f}")
        print_histogram(heights)

    # Background generation through the scheduler
    print("\n\nBackground generation:")
    print("-" * 30)

    with GenerationScheduler(Box.grid(257, 257), seed="background") as scheduler:
        handle = scheduler.request_generation(
            on_complete=lambda h: print(f"  Run {h.run_id} finished in {h.elapsed_seconds:.3f}s")
        )
        declined = scheduler.request_generation()
        print(f"  Second request while busy: {'declined' if declined is None else 'accepted'}")

        while not handle.wait(timeout=0.01):
            print(f"  Progress: {handle.progress.percent}%")

        print(f"  Active buffer generation: {scheduler.generation_count}")


if __name__ == "__main__":
    main()
