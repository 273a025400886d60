#!/usr/bin/env python3
"""
ASCII Layers - Intensity Engine
===============================
Derives a per-cell "ink demand" field from the adjusted greyscale field
using one of five algorithms, followed by the shared contrast / invert /
threshold post-step.
"""

import numpy as np

from ascii_layers.config import Layer
from ascii_layers.constants import (
    HIGHPASS_RADIUS,
    LCG_INCREMENT,
    LCG_MASK,
    LCG_MULTIPLIER,
    STIPPLE_SEED,
    IntensityAlgorithm,
)
from ascii_layers.field_ops import box_blur, normalize_max, sobel_magnitude


class StippleGenerator:
    """Linear congruential generator with a fixed seed."""

    def __init__(self, seed: int = STIPPLE_SEED):
        self.state = seed

    def next(self) -> float:
        """Next value in [0, 1]."""
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) & LCG_MASK
        return self.state / LCG_MASK

    def sample(self, count: int) -> np.ndarray:
        return np.array([self.next() for _ in range(count)], dtype=np.float64)


class IntensityEngine:
    """Per-layer ink demand computation."""

    @staticmethod
    def tone(grey: np.ndarray, dark_on_light: bool = True) -> np.ndarray:
        """Darkness (``255 - g``) for ink on paper, lightness (``g``) otherwise."""
        return 255.0 - grey if dark_on_light else grey.copy()

    @staticmethod
    def brightness(grey: np.ndarray, dark_on_light: bool = True) -> np.ndarray:
        return IntensityEngine.tone(grey, dark_on_light)

    @staticmethod
    def edges(grey: np.ndarray, sensitivity: float = 100) -> np.ndarray:
        """Sobel magnitude rescaled so the strongest edge maps to 255."""
        return normalize_max(sobel_magnitude(grey, sensitivity))

    @staticmethod
    def highpass(grey: np.ndarray) -> np.ndarray:
        """Absolute local contrast against a radius-3 box blur, times 4."""
        return np.abs(grey - box_blur(grey, HIGHPASS_RADIUS)) * 4.0

    @staticmethod
    def detail(grey: np.ndarray, sensitivity: float = 100,
               dark_on_light: bool = True) -> np.ndarray:
        """Blend of normalized edges, high-pass structure and tone."""
        edge = normalize_max(sobel_magnitude(grey, sensitivity))
        structure = np.abs(grey - box_blur(grey, HIGHPASS_RADIUS)) * 3.0
        tone = IntensityEngine.tone(grey, dark_on_light)
        return edge * 0.5 + structure * 0.3 + tone * 0.2

    @staticmethod
    def stipple(grey: np.ndarray, dark_on_light: bool = True) -> np.ndarray:
        """
        Random dot placement weighted by tone.

        Each cell, in raster order, draws one value from a freshly seeded
        generator and receives ``tone * 1.5`` ink with probability
        ``(tone / 255) ** 2``, otherwise none.
        """
        tone = IntensityEngine.tone(grey, dark_on_light)
        draws = StippleGenerator().sample(tone.size).reshape(tone.shape)
        probability = (tone / 255.0) * (tone / 255.0)
        return np.where(draws < probability, tone * 1.5, 0.0)

    @staticmethod
    def post_process(intensity: np.ndarray, contrast: float = 100, invert: bool = False,
                     threshold: float = 0) -> np.ndarray:
        """Scale by contrast, optionally invert, zero values below threshold, clamp."""
        v = intensity * (contrast / 100.0)
        if invert:
            v = 255.0 - v
        v = np.where(v < threshold, 0.0, v)
        return np.clip(v, 0, 255)

    @classmethod
    def compute(cls, grey: np.ndarray, algorithm: IntensityAlgorithm,
                contrast: float = 100, invert: bool = False, threshold: float = 0,
                edge_sensitivity: float = 100, dark_on_light: bool = True) -> np.ndarray:
        """
        Compute the ink demand field for one layer.

        Args:
            grey: Adjusted greyscale field at grid resolution
            algorithm: Intensity algorithm
            contrast: Layer contrast in percent
            invert: Invert the intensity after contrast
            threshold: Values strictly below this become 0
            edge_sensitivity: Sobel scale in percent
            dark_on_light: Render mode

        Returns:
            Intensity field clamped to [0, 255]
        """
        grey = np.asarray(grey, dtype=np.float64)

        if algorithm == IntensityAlgorithm.BRIGHTNESS:
            intensity = cls.brightness(grey, dark_on_light)
        elif algorithm == IntensityAlgorithm.EDGES:
            intensity = cls.edges(grey, edge_sensitivity)
        elif algorithm == IntensityAlgorithm.HIGHPASS:
            intensity = cls.highpass(grey)
        elif algorithm == IntensityAlgorithm.DETAIL:
            intensity = cls.detail(grey, edge_sensitivity, dark_on_light)
        elif algorithm == IntensityAlgorithm.STIPPLE:
            intensity = cls.stipple(grey, dark_on_light)
        else:
            raise ValueError(f"Unknown intensity algorithm: {algorithm}")

        return cls.post_process(intensity, contrast, invert, threshold)

    @classmethod
    def for_layer(cls, grey: np.ndarray, layer: Layer) -> np.ndarray:
        """Compute the ink demand field using a layer's settings."""
        return cls.compute(
            grey, layer.algorithm,
            contrast=layer.contrast,
            invert=layer.invert,
            threshold=layer.threshold,
            edge_sensitivity=layer.edge_sensitivity,
            dark_on_light=layer.dark_on_light,
        )
