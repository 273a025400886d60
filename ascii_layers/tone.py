#!/usr/bin/env python3
"""
ASCII Layers - Global Tone Adjuster
===================================
Fixed-order per-pixel transform chain applied to the greyscale field before
any layer samples it, and the tone-curve lookup table it uses.
"""

import logging
from typing import Sequence

import numpy as np
from scipy.interpolate import PchipInterpolator

from ascii_layers.config import CurvePoint, GlobalSettings
from ascii_layers.field_ops import ImageLike, gaussian_blur, greyscale, unsharp_mask

logger = logging.getLogger(__name__)


# =============================================================================
# TONE CURVE
# =============================================================================

def is_identity_curve(points: Sequence[CurvePoint]) -> bool:
    """True when every control point sits on the diagonal."""
    return all(abs(p.x - p.y) < 1e-9 for p in points)


def build_tone_curve_lut(points: Sequence[CurvePoint]) -> np.ndarray:
    """
    Build a 256-entry remap table from tone-curve control points.

    Points are clamped to the unit square and sorted by x; a repeated x keeps
    the last point. The curve is extended flat to x=0 and x=1 and interpolated
    with a monotone piecewise cubic, so it never overshoots between points
    placed in increasing order.

    Args:
        points: Control points in [0, 1]^2

    Returns:
        float64 array of 256 output levels in [0, 255]
    """
    by_x = {}
    for p in sorted((p.clamped() for p in points), key=lambda p: p.x):
        by_x[p.x] = p.y

    if not by_x:
        return np.arange(256, dtype=np.float64)

    xs = list(by_x.keys())
    ys = list(by_x.values())
    if xs[0] > 0.0:
        xs.insert(0, 0.0)
        ys.insert(0, ys[0])
    if xs[-1] < 1.0:
        xs.append(1.0)
        ys.append(ys[-1])

    if len(xs) < 2:
        return np.full(256, ys[0] * 255.0)

    curve = PchipInterpolator(np.array(xs), np.array(ys))
    lut = curve(np.linspace(0.0, 1.0, 256)) * 255.0
    return np.clip(lut, 0, 255)


def apply_tone_curve(field: np.ndarray, lut: np.ndarray) -> np.ndarray:
    """Map a field through a 256-entry table, interpolating between entries."""
    return np.interp(field, np.arange(256, dtype=np.float64), lut)


# =============================================================================
# ADJUSTMENT CHAIN
# =============================================================================

def adjust_greyscale(grey: np.ndarray, settings: GlobalSettings) -> np.ndarray:
    """
    Apply the global adjustments to a greyscale field.

    Order is fixed: blur, background removal, sharpen, levels, brightness,
    contrast, gamma, tone curve, posterize, invert, clamp. Reordering any two
    steps changes the output.

    Args:
        grey: Greyscale field, nominally [0, 255]
        settings: Global settings

    Returns:
        New adjusted field clamped to [0, 255]
    """
    g = np.array(grey, dtype=np.float64)

    if settings.blur > 0:
        g = gaussian_blur(g, settings.blur)

    if settings.high_pass_radius > 0:
        blurred = gaussian_blur(g, settings.high_pass_radius)
        g = 128.0 + (g - blurred) * 2.0

    if settings.sharpen > 0:
        g = unsharp_mask(g, settings.sharpen)

    # Levels
    value_range = max(1.0, settings.white_point - settings.black_point)
    v = (g - settings.black_point) / value_range * 255.0

    v = v + settings.brightness
    v = (v - 128.0) * (settings.contrast / 100.0) + 128.0

    # Gamma
    v = 255.0 * np.power(np.maximum(0.0, v) / 255.0, settings.gamma)

    if not is_identity_curve(settings.tone_curve):
        v = apply_tone_curve(v, build_tone_curve_lut(settings.tone_curve))

    if settings.posterize >= 2:
        step = 255.0 / (settings.posterize - 1)
        v = np.floor(v / step + 0.5) * step

    if settings.invert:
        v = 255.0 - v

    return np.clip(v, 0, 255)


def adjust_image(image: ImageLike, settings: GlobalSettings) -> np.ndarray:
    """Greyscale an image and run the global adjustment chain on it."""
    grey = greyscale(image)
    logger.debug("Adjusting %dx%d field", grey.shape[1], grey.shape[0])
    return adjust_greyscale(grey, settings)
