#!/usr/bin/env python3
"""
ASCII Layers - Dithering
========================
Quantizes a continuous intensity field to evenly spaced levels, one per
glyph in the ramp. Error-diffusion results are left unclamped so the
diffused ink is preserved; callers clamp before the glyph lookup.
"""

from typing import List, Tuple

import numpy as np

from ascii_layers.constants import BAYER_4, DitherMethod

# (dx, dy, weight) for each error-diffusion kernel
FLOYD_STEINBERG_KERNEL: List[Tuple[int, int, float]] = [
    (1, 0, 7 / 16),
    (-1, 1, 3 / 16), (0, 1, 5 / 16), (1, 1, 1 / 16),
]

# Six slots of 1/8 each; the remaining 2/8 of the error is dropped
ATKINSON_KERNEL: List[Tuple[int, int, float]] = [
    (1, 0, 1 / 8), (2, 0, 1 / 8),
    (-1, 1, 1 / 8), (0, 1, 1 / 8), (1, 1, 1 / 8),
    (0, 2, 1 / 8),
]

STUCKI_KERNEL: List[Tuple[int, int, float]] = [
    (1, 0, 8 / 42), (2, 0, 4 / 42),
    (-2, 1, 2 / 42), (-1, 1, 4 / 42), (0, 1, 8 / 42), (1, 1, 4 / 42), (2, 1, 2 / 42),
    (-2, 2, 1 / 42), (-1, 2, 2 / 42), (0, 2, 4 / 42), (1, 2, 2 / 42), (2, 2, 1 / 42),
]


class Ditherer:
    """Quantization strategies for layer intensity fields."""

    @staticmethod
    def levels_for(glyph_count: int) -> int:
        return max(2, glyph_count)

    @staticmethod
    def step_for(levels: int) -> float:
        return 255.0 / (max(2, levels) - 1)

    @staticmethod
    def quantize(intensity: np.ndarray, levels: int) -> np.ndarray:
        """Round every value to the nearest level, no error carry."""
        step = Ditherer.step_for(levels)
        return np.floor(np.asarray(intensity, dtype=np.float64) / step + 0.5) * step

    @staticmethod
    def error_diffusion(intensity: np.ndarray, levels: int,
                        kernel: List[Tuple[int, int, float]]) -> np.ndarray:
        """
        Raster-scan error diffusion with the given kernel.

        Neighbors falling outside the field are skipped, so their share of
        the error is lost at the borders.
        """
        result = np.array(intensity, dtype=np.float64)
        step = Ditherer.step_for(levels)
        h, w = result.shape

        for y in range(h):
            row = result[y]
            for x in range(w):
                old_val = row[x]
                new_val = np.floor(old_val / step + 0.5) * step
                row[x] = new_val
                error = old_val - new_val
                if error == 0:
                    continue

                for dx, dy, weight in kernel:
                    nx, ny = x + dx, y + dy
                    if 0 <= nx < w and ny < h:
                        result[ny, nx] += error * weight

        return result

    @staticmethod
    def ordered(intensity: np.ndarray, levels: int) -> np.ndarray:
        """4x4 Bayer threshold offset added before rounding."""
        arr = np.asarray(intensity, dtype=np.float64)
        step = Ditherer.step_for(levels)
        h, w = arr.shape

        ys = np.arange(h) % 4
        xs = np.arange(w) % 4
        offsets = (BAYER_4[np.ix_(ys, xs)] / 16.0 - 0.5) * step

        return np.floor((arr + offsets) / step + 0.5) * step

    @classmethod
    def apply(cls, intensity: np.ndarray, method: DitherMethod, glyph_count: int) -> np.ndarray:
        """
        Quantize ``intensity`` to ``max(2, glyph_count)`` levels.

        Args:
            intensity: Post-processed intensity field
            method: Dithering strategy
            glyph_count: Number of unique glyphs in the layer ramp

        Returns:
            New quantized field (not clamped)
        """
        levels = cls.levels_for(glyph_count)

        if method == DitherMethod.NONE:
            return cls.quantize(intensity, levels)
        elif method == DitherMethod.FLOYD_STEINBERG:
            return cls.error_diffusion(intensity, levels, FLOYD_STEINBERG_KERNEL)
        elif method == DitherMethod.ATKINSON:
            return cls.error_diffusion(intensity, levels, ATKINSON_KERNEL)
        elif method == DitherMethod.STUCKI:
            return cls.error_diffusion(intensity, levels, STUCKI_KERNEL)
        elif method == DitherMethod.ORDERED:
            return cls.ordered(intensity, levels)
        else:
            raise ValueError(f"Unknown dither method: {method}")
