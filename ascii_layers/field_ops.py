#!/usr/bin/env python3
"""
ASCII Layers - Scalar Field Ops
===============================
Numeric transforms over 2-D float buffers: greyscale extraction, separable
box blur, Gaussian approximation, unsharp mask, Sobel gradient magnitude and
resampling onto a character grid.
"""

from typing import Union

import numpy as np
from PIL import Image
from scipy import ndimage

from ascii_layers.constants import (
    GAUSSIAN_PASSES,
    GAUSSIAN_RADIUS_DIVISOR,
    LUMA_WEIGHTS,
    SOBEL_X,
    SOBEL_Y,
    UNSHARP_RADIUS,
)

ImageLike = Union[Image.Image, np.ndarray]


# =============================================================================
# PIXEL ACCESS
# =============================================================================

def to_rgb_array(image: ImageLike) -> np.ndarray:
    """
    Decode an image into an ``(h, w, 3)`` uint8 RGB array.

    Transparent pixels are flattened onto white, so cut-out images read as
    blank paper rather than black.
    """
    if isinstance(image, Image.Image):
        img = image
        if img.mode == 'P' and 'transparency' in img.info:
            img = img.convert('RGBA')
        if img.mode in ('RGBA', 'LA'):
            rgba = img.convert('RGBA')
            background = Image.new('RGB', rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[3])
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')
        return np.array(img, dtype=np.uint8)

    arr = np.asarray(image)
    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, None], 3, axis=2)
    if arr.shape[2] == 4:
        alpha = arr[:, :, 3:4].astype(np.float64) / 255.0
        rgb = arr[:, :, :3].astype(np.float64) * alpha + 255.0 * (1.0 - alpha)
        return np.clip(np.round(rgb), 0, 255).astype(np.uint8)
    return np.clip(arr[:, :, :3], 0, 255).astype(np.uint8)


def greyscale(image: ImageLike) -> np.ndarray:
    """Luma field ``0.299R + 0.587G + 0.114B`` as float64."""
    rgb = to_rgb_array(image).astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return wr * rgb[:, :, 0] + wg * rgb[:, :, 1] + wb * rgb[:, :, 2]


# =============================================================================
# BLUR AND SHARPEN
# =============================================================================

def _window_mean_rows(data: np.ndarray, r: int) -> np.ndarray:
    """Mean over ``[x - r, x + r]`` along each row, window clipped at the edges."""
    h, w = data.shape
    csum = np.zeros((h, w + 1), dtype=np.float64)
    np.cumsum(data, axis=1, out=csum[:, 1:])

    idx = np.arange(w)
    lo = np.clip(idx - r, 0, w - 1)
    hi = np.clip(idx + r, 0, w - 1)
    counts = (hi - lo + 1).astype(np.float64)

    return (csum[:, hi + 1] - csum[:, lo]) / counts


def box_blur(field: np.ndarray, radius: float) -> np.ndarray:
    """
    Separable box blur, horizontal pass then vertical pass.

    The window shrinks at the borders instead of padding, so the local mean
    is preserved along the edges.

    Args:
        field: 2-D float buffer
        radius: Window radius, rounded; below 1 the field is copied unchanged

    Returns:
        Blurred copy of the field
    """
    arr = np.asarray(field, dtype=np.float64)
    if radius < 1 or arr.size == 0:
        return arr.copy()

    r = int(np.floor(radius + 0.5))
    horizontal = _window_mean_rows(arr, r)
    return _window_mean_rows(horizontal.T, r).T


def gaussian_blur(field: np.ndarray, radius: float) -> np.ndarray:
    """Approximate a Gaussian with three box-blur passes."""
    r = max(1, int(np.floor(radius / GAUSSIAN_RADIUS_DIVISOR + 0.5)))
    result = np.asarray(field, dtype=np.float64)
    for _ in range(GAUSSIAN_PASSES):
        result = box_blur(result, r)
    return result


def unsharp_mask(field: np.ndarray, amount: float) -> np.ndarray:
    """Sharpen by adding back ``amount`` percent of the high frequencies."""
    arr = np.asarray(field, dtype=np.float64)
    if amount <= 0:
        return arr
    blurred = gaussian_blur(arr, UNSHARP_RADIUS)
    return np.clip(arr + (arr - blurred) * (amount / 100.0), 0, 255)


# =============================================================================
# EDGES
# =============================================================================

def sobel_magnitude(field: np.ndarray, sensitivity: float = 100) -> np.ndarray:
    """
    Sobel gradient magnitude scaled by ``sensitivity`` percent.

    The outermost rows and columns are not computed and stay 0.
    """
    arr = np.asarray(field, dtype=np.float64)
    edges = np.zeros_like(arr)
    h, w = arr.shape
    if h < 3 or w < 3:
        return edges

    gx = ndimage.correlate(arr, SOBEL_X, mode='nearest')
    gy = ndimage.correlate(arr, SOBEL_Y, mode='nearest')
    magnitude = np.sqrt(gx ** 2 + gy ** 2) * (sensitivity / 100.0)

    edges[1:-1, 1:-1] = magnitude[1:-1, 1:-1]
    return edges


def normalize_max(field: np.ndarray) -> np.ndarray:
    """Rescale so the maximum maps to 255; an all-zero field is returned as is."""
    arr = np.asarray(field, dtype=np.float64)
    max_val = arr.max() if arr.size else 0.0
    if max_val > 0:
        return arr / max_val * 255.0
    return arr.copy()


# =============================================================================
# RESAMPLING
# =============================================================================

def resample(field: np.ndarray, cols: int, rows: int) -> np.ndarray:
    """Box-filter a scalar field down (or up) to ``rows x cols``."""
    img = Image.fromarray(np.ascontiguousarray(field, dtype=np.float32))
    resized = img.resize((cols, rows), Image.Resampling.BOX)
    return np.asarray(resized, dtype=np.float64)


def resample_color(rgb: np.ndarray, cols: int, rows: int) -> np.ndarray:
    """Box-filter an RGB array down to ``(rows, cols, 3)``."""
    img = Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8))
    resized = img.resize((cols, rows), Image.Resampling.BOX)
    return np.asarray(resized, dtype=np.uint8)
