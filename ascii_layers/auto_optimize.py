#!/usr/bin/env python3
"""
ASCII Layers - Auto-Optimizer
=============================
Histogram-driven estimation of levels, brightness, gamma and contrast.
"""

import logging
import math
from dataclasses import replace

import numpy as np
from PIL import Image

from ascii_layers.config import GlobalSettings
from ascii_layers.field_ops import ImageLike, greyscale

logger = logging.getLogger(__name__)


def _sample(image: ImageLike, sample_size: int) -> ImageLike:
    """Downsample so the long side is at most ``sample_size`` pixels."""
    if sample_size <= 0:
        return image
    if isinstance(image, np.ndarray):
        h, w = image.shape[:2]
        step = max(1, int(math.ceil(max(h, w) / sample_size)))
        return image[::step, ::step]

    if max(image.size) <= sample_size:
        return image
    sampled = image.copy()
    sampled.thumbnail((sample_size, sample_size), Image.Resampling.BOX)
    return sampled


def luminance_histogram(image: ImageLike, sample_size: int = 0) -> np.ndarray:
    """
    256-bin luminance histogram.

    Args:
        image: Source image
        sample_size: Downsample to this long side first (0 keeps full size)

    Returns:
        int64 array of 256 counts
    """
    grey = greyscale(_sample(image, sample_size))
    bins = np.floor(np.clip(grey, 0, 255) + 0.5).astype(np.int64)
    return np.bincount(bins.ravel(), minlength=256)


class AutoOptimizer:
    """Estimate global settings that spread an image across the full tonal range."""

    LOW_PERCENTILE = 0.005
    HIGH_PERCENTILE = 0.995
    LEVELS_PADDING = 2
    BRIGHTNESS_PULL = 0.6
    CONTRAST_TARGET_RANGE = 220
    CONTRAST_RANGE_LIMIT = 180

    @classmethod
    def levels(cls, histogram: np.ndarray):
        """Black and white points at the low and high cumulative percentiles."""
        total = int(histogram.sum())
        cumulative = np.cumsum(histogram)
        lo = max(1, math.floor(total * cls.LOW_PERCENTILE + 0.5))
        hi = max(1, math.floor(total * cls.HIGH_PERCENTILE + 0.5))

        black = int(np.argmax(cumulative >= lo))
        white = int(np.argmax(cumulative >= hi)) if cumulative[-1] >= hi else 255
        return black, white

    @classmethod
    def optimize(cls, histogram: np.ndarray, settings: GlobalSettings) -> GlobalSettings:
        """
        Derive levels, brightness, gamma and contrast from a histogram.

        Only those five fields change; everything else in ``settings`` is
        carried over into the returned copy.
        """
        black, white = cls.levels(histogram)

        values = np.arange(256)
        window = slice(black, white + 1)
        count = histogram[window].sum()
        mean = float((values[window] * histogram[window]).sum() / count) if count > 0 else 128.0

        brightness = math.floor((128.0 - mean) * cls.BRIGHTNESS_PULL + 0.5)

        norm = (mean - black) / max(1, white - black)
        if norm >= 1.0:
            gamma = 2.5
        elif norm > 0.01:
            gamma = min(2.5, max(0.3, math.log(0.5) / math.log(norm)))
        else:
            gamma = 1.0

        # A single-valued histogram has no range to stretch
        value_range = white - black
        if 0 < value_range < cls.CONTRAST_RANGE_LIMIT:
            contrast = math.floor(100.0 * cls.CONTRAST_TARGET_RANGE / value_range + 0.5)
        else:
            contrast = 100

        optimized = replace(
            settings,
            black_point=max(0, black - cls.LEVELS_PADDING),
            white_point=min(255, white + cls.LEVELS_PADDING),
            brightness=max(-150, min(150, brightness)),
            contrast=max(80, min(200, contrast)),
            gamma=round(gamma, 2),
        )
        logger.debug(
            "Auto-optimized: contrast=%s brightness=%s gamma=%s black=%s white=%s",
            optimized.contrast, optimized.brightness, optimized.gamma,
            optimized.black_point, optimized.white_point,
        )
        return optimized


def auto_optimize_settings(image: ImageLike, settings: GlobalSettings,
                           sample_size: int = 256) -> GlobalSettings:
    """Convenience wrapper: histogram a sample of ``image`` and optimize."""
    return AutoOptimizer.optimize(luminance_histogram(image, sample_size), settings)
