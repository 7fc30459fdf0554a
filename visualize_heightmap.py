#!/usr/bin/env python3
"""
Visualize a diamond-square height field.
Generates an image showing the height values as a color map and as a
shaded relief.
"""

import argparse

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.colors import LightSource

from py_terrain.core import Terrain


def visualize_heightmap(size=129, roughness=1.0, seed="123456", show=True):
    """
    Generate and visualize a height field.

    Args:
        size: Grid side length, 2^n + 1
        roughness: Initial random amplitude
        seed: Random seed
        show: Open an interactive window after saving
    """
    print(f"Generating {size}x{size} height field...")

    terrain = Terrain(size=size, roughness=roughness, seed=seed)
    try:
        handle = terrain.generate()
        handle.wait()
        print(f"Generated in {handle.elapsed_seconds:.3f}s")
        heights = terrain.snapshot().pixels
    finally:
        terrain.close()

    # Statistics
    print(f"\nHeight field statistics:")
    print(f"  Min height: {np.min(heights):.3f}")
    print(f"  Max height: {np.max(heights):.3f}")
    print(f"  Mean height: {np.mean(heights):.3f}")
    print(
        f"  Above zero: {np.sum(heights >= 0)} ({np.sum(heights >= 0)/heights.size*100:.1f}%)"
    )

    # Create visualization
    print("\nCreating visualization...")

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(16, 8))

    # Left plot: raw heights with contours
    im = ax1.imshow(heights, cmap="terrain", origin="upper")
    contours = ax1.contour(heights, levels=8, colors="black", linewidths=0.5, alpha=0.5)
    ax1.clabel(contours, inline=True, fontsize=8)
    plt.colorbar(im, ax=ax1, label="Height")
    ax1.set_title(f"Height field\n{size}x{size} points, roughness {roughness}")
    ax1.set_xlabel("X")
    ax1.set_ylabel("Y")

    # Right plot: hill-shaded relief
    light = LightSource(azdeg=315, altdeg=45)
    relief = light.shade(heights, cmap=plt.cm.terrain, vert_exag=size / 4, blend_mode="soft")
    ax2.imshow(relief, origin="upper")
    ax2.set_title("Shaded relief")
    ax2.set_xlabel("X")
    ax2.set_ylabel("Y")

    fig.suptitle(f"Diamond-Square Terrain - Seed: {seed}", fontsize=16)

    plt.tight_layout()

    output_file = f"heightmap_{size}_{seed}.png"
    plt.savefig(output_file, dpi=200, bbox_inches="tight")
    print(f"\nVisualization saved to: {output_file}")

    if show:
        plt.show()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Visualize a diamond-square height field")
    parser.add_argument("--size", type=int, default=129, help="Grid side length, 2^n + 1")
    parser.add_argument("--roughness", type=float, default=1.0, help="Initial random amplitude")
    parser.add_argument("--seed", default="123456", help="Random seed")
    parser.add_argument("--no-show", action="store_true", help="Only save the image")
    args = parser.parse_args()

    visualize_heightmap(args.size, args.roughness, args.seed, show=not args.no_show)
