#!/usr/bin/env python3
"""
ASCII Layers - Compositor
=========================
Lays out each layer's character grid, renders its glyphs and composites the
layers in order with per-layer opacity and blend mode.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageColor, ImageDraw

from ascii_layers.calibration import CharacterLUT, LUTCache, default_cache
from ascii_layers.config import GlobalSettings, Layer
from ascii_layers.constants import (
    CELL_HEIGHT_FACTOR,
    MIN_VISIBLE_INTENSITY,
    BlendMode,
    DitherMethod,
)
from ascii_layers.dithering import Ditherer
from ascii_layers.field_ops import ImageLike, greyscale, resample, resample_color, to_rgb_array
from ascii_layers.intensity import IntensityEngine
from ascii_layers.tone import adjust_greyscale

logger = logging.getLogger(__name__)


def parse_color(color: str) -> Tuple[int, int, int]:
    """Hex (or CSS name) color to an RGB tuple."""
    return ImageColor.getrgb(color)[:3]


# =============================================================================
# LAYER GRID
# =============================================================================

@dataclass
class LayerGrid:
    """Per-cell glyph placement for one layer."""

    layer: Layer
    cols: int
    rows: int
    cell_width: float
    cell_height: float
    font_size: float
    intensity: np.ndarray                    # (rows, cols) final intensity
    glyphs: np.ndarray                       # (rows, cols) object array of str
    colors: Optional[np.ndarray] = None      # (rows, cols, 3) source colors

    @property
    def empty(self) -> bool:
        return self.cols <= 0 or self.rows <= 0

    @property
    def visible(self) -> np.ndarray:
        """Cells that draw a glyph: bright enough and not a space."""
        if self.empty:
            return np.zeros((max(0, self.rows), max(0, self.cols)), dtype=bool)
        return (self.intensity >= MIN_VISIBLE_INTENSITY) & (self.glyphs != ' ')

    def cell_color(self, row: int, col: int) -> Tuple[int, int, int]:
        if self.colors is not None:
            r, g, b = self.colors[row, col]
            return int(r), int(g), int(b)
        return parse_color(self.layer.color)

    def cells(self) -> Iterator[Tuple[int, int, str]]:
        """(row, col, glyph) for every visible cell, in raster order."""
        for row, col in zip(*np.nonzero(self.visible)):
            yield int(row), int(col), self.glyphs[row, col]

    def text_lines(self) -> List[str]:
        visible = self.visible
        return [''.join(self.glyphs[r, c] if visible[r, c] else ' ' for c in range(self.cols))
                for r in range(self.rows)]


def compute_layer_grid(adjusted: np.ndarray, layer: Layer, cols: int, rows: int,
                       lut: CharacterLUT, source_rgb: Optional[np.ndarray] = None,
                       cell_width: float = 0.0, cell_height: float = 0.0,
                       font_size: Optional[float] = None) -> LayerGrid:
    """
    Run intensity, dithering and glyph lookup for a layer on a given grid.

    Args:
        adjusted: Globally adjusted greyscale field (source resolution)
        layer: Layer settings
        cols: Grid columns
        rows: Grid rows
        lut: Calibrated lookup table for the layer's glyphs
        source_rgb: Original RGB pixels, sampled per cell when the layer
            uses source colors
        cell_width: Cell width in output pixels
        cell_height: Cell height in output pixels
        font_size: Effective font size (defaults to the layer's)

    Returns:
        LayerGrid
    """
    font_size = layer.font_size if font_size is None else font_size
    if cols <= 0 or rows <= 0:
        empty = np.zeros((0, 0))
        return LayerGrid(layer, cols, rows, cell_width, cell_height, font_size,
                         empty, empty.astype(object))

    sampled = resample(adjusted, cols, rows)
    intensity = IntensityEngine.for_layer(sampled, layer)
    if layer.dithering != DitherMethod.NONE:
        intensity = Ditherer.apply(intensity, layer.dithering, len(layer.glyphs))
    intensity = np.clip(intensity, 0, 255)

    colors = None
    if layer.color_mode and source_rgb is not None:
        colors = resample_color(source_rgb, cols, rows)

    return LayerGrid(layer, cols, rows, cell_width, cell_height, font_size,
                     intensity, lut.lookup(intensity), colors)


# =============================================================================
# BLEND MODES
# =============================================================================

class BlendFunctions:
    """Separable blend functions B(Cb, Cs) on colors in [0, 1]."""

    @staticmethod
    def normal(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return cs

    @staticmethod
    def multiply(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return cb * cs

    @staticmethod
    def screen(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return cb + cs - cb * cs

    @staticmethod
    def hard_light(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return np.where(cs <= 0.5,
                        BlendFunctions.multiply(cb, 2.0 * cs),
                        BlendFunctions.screen(cb, 2.0 * cs - 1.0))

    @staticmethod
    def overlay(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return BlendFunctions.hard_light(cs, cb)

    @staticmethod
    def darken(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return np.minimum(cb, cs)

    @staticmethod
    def lighten(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return np.maximum(cb, cs)

    @staticmethod
    def color_burn(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        with np.errstate(divide='ignore', invalid='ignore'):
            burned = 1.0 - np.minimum(1.0, (1.0 - cb) / cs)
        return np.where(cb >= 1.0, 1.0, np.where(cs <= 0.0, 0.0, burned))

    @staticmethod
    def difference(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
        return np.abs(cb - cs)

    @classmethod
    def get(cls, mode: BlendMode):
        functions = {
            BlendMode.NORMAL: cls.normal,
            BlendMode.MULTIPLY: cls.multiply,
            BlendMode.SCREEN: cls.screen,
            BlendMode.OVERLAY: cls.overlay,
            BlendMode.DARKEN: cls.darken,
            BlendMode.LIGHTEN: cls.lighten,
            BlendMode.COLOR_BURN: cls.color_burn,
            BlendMode.HARD_LIGHT: cls.hard_light,
            BlendMode.DIFFERENCE: cls.difference,
        }
        if mode not in functions:
            raise ValueError(f"Unknown blend mode: {mode}")
        return functions[mode]


def blend_onto(backdrop: np.ndarray, source: np.ndarray, opacity: float = 1.0,
               mode: BlendMode = BlendMode.NORMAL) -> np.ndarray:
    """
    Composite ``source`` over ``backdrop`` (both float RGBA in [0, 1]).

    The blend function mixes with the source color in proportion to the
    backdrop's alpha, then the result is laid over the backdrop with the
    source alpha scaled by ``opacity``.
    """
    cb, ab = backdrop[..., :3], backdrop[..., 3:4]
    cs, a_s = source[..., :3], source[..., 3:4] * opacity

    mixed = (1.0 - ab) * cs + ab * np.clip(BlendFunctions.get(mode)(cb, cs), 0.0, 1.0)
    ao = a_s + ab * (1.0 - a_s)
    premultiplied = a_s * mixed + (1.0 - a_s) * ab * cb

    with np.errstate(divide='ignore', invalid='ignore'):
        co = np.where(ao > 0, premultiplied / ao, 0.0)

    return np.concatenate([np.clip(co, 0.0, 1.0), ao], axis=-1)


# =============================================================================
# COMPOSITOR
# =============================================================================

class Compositor:
    """Renders layer stacks to RGBA images."""

    def __init__(self, cache: Optional[LUTCache] = None):
        self.cache = cache if cache is not None else default_cache()

    @property
    def backend(self):
        return self.cache.backend

    def geometry(self, layer: Layer, out_w: int, out_h: int,
                 scale: float = 1.0) -> Tuple[int, int, float, float, float]:
        """(cols, rows, cell width, cell height, font size) for a layer at an output size."""
        font_size = layer.font_size * scale
        cell_w = self.backend.advance(layer.font_family, font_size) + layer.char_spacing * scale
        cell_h = font_size * CELL_HEIGHT_FACTOR
        if cell_w <= 0 or cell_h <= 0:
            return 0, 0, cell_w, cell_h, font_size
        return int(math.floor(out_w / cell_w)), int(math.floor(out_h / cell_h)), cell_w, cell_h, font_size

    def layout_layer(self, adjusted: np.ndarray, layer: Layer, out_w: int, out_h: int,
                     scale: float = 1.0, source_rgb: Optional[np.ndarray] = None) -> LayerGrid:
        """Compute a layer's grid at the given output size."""
        cols, rows, cell_w, cell_h, font_size = self.geometry(layer, out_w, out_h, scale)
        logger.debug("Layer %r: grid %dx%d, cell %.1fx%.1fpx", layer.name, cols, rows, cell_w, cell_h)

        lut = self.cache.get(layer.glyphs, layer.font_family, font_size)
        return compute_layer_grid(adjusted, layer, cols, rows, lut, source_rgb,
                                  cell_w, cell_h, font_size)

    def draw_grid(self, grid: LayerGrid, out_w: int, out_h: int) -> np.ndarray:
        """Rasterize a grid into a float RGBA array; empty grids stay transparent."""
        rgba = np.zeros((out_h, out_w, 4), dtype=np.float64)
        if grid.empty:
            return rgba

        coverage = Image.new('L', (out_w, out_h), 0)
        draw = ImageDraw.Draw(coverage)
        family = grid.layer.font_family

        tint = None
        if grid.colors is not None:
            tint = Image.new('RGB', (out_w, out_h), parse_color(grid.layer.color))

        for row, col, glyph in grid.cells():
            xy = (col * grid.cell_width, row * grid.cell_height)
            self.backend.draw_glyph(draw, xy, glyph, family, grid.font_size, 255)
            if tint is not None:
                self._tint_glyph(tint, xy, glyph, grid, grid.cell_color(row, col))

        if tint is not None:
            rgba[..., :3] = np.asarray(tint, dtype=np.float64) / 255.0
        else:
            rgba[..., :3] = np.array(parse_color(grid.layer.color), dtype=np.float64) / 255.0

        rgba[..., 3] = np.asarray(coverage, dtype=np.float64) / 255.0
        return rgba

    def _tint_glyph(self, tint: Image.Image, xy: Tuple[float, float], glyph: str,
                    grid: LayerGrid, color: Tuple[int, int, int]) -> None:
        """Paint every pixel a glyph touches with its own cell's color, spill included."""
        pad_w = int(math.ceil(grid.cell_width))
        pad_h = int(math.ceil(grid.cell_height))
        x, y = xy
        left = max(0, int(math.floor(x)) - pad_w)
        top = max(0, int(math.floor(y)) - pad_h)
        right = min(tint.width, int(math.ceil(x)) + 2 * pad_w)
        bottom = min(tint.height, int(math.ceil(y)) + 2 * pad_h)
        if right <= left or bottom <= top:
            return

        mask = Image.new('L', (right - left, bottom - top), 0)
        self.backend.draw_glyph(ImageDraw.Draw(mask), (x - left, y - top), glyph,
                                grid.layer.font_family, grid.font_size, 255)
        tint.paste(color, (left, top, right, bottom), mask.point(lambda v: 255 if v else 0))

    def render_layer(self, adjusted: np.ndarray, layer: Layer, out_w: int, out_h: int,
                     scale: float = 1.0, source_rgb: Optional[np.ndarray] = None) -> Image.Image:
        """Render one layer on its own transparent RGBA image."""
        grid = self.layout_layer(adjusted, layer, out_w, out_h, scale, source_rgb)
        return to_image(self.draw_grid(grid, out_w, out_h))

    def composite(self, image: ImageLike, layers: Sequence[Layer], settings: GlobalSettings,
                  out_w: int, out_h: int, scale: float = 1.0) -> Image.Image:
        """
        Render all enabled layers and composite them in order.

        Args:
            image: Source image
            layers: Layer stack, bottom first
            settings: Global adjustments and background
            out_w: Output width in pixels
            out_h: Output height in pixels
            scale: Multiplier on font sizes and spacing (supersampled export)

        Returns:
            RGBA image of ``out_w x out_h``
        """
        source_rgb = to_rgb_array(image)
        adjusted = adjust_greyscale(greyscale(source_rgb), settings)

        canvas = np.zeros((out_h, out_w, 4), dtype=np.float64)
        if not settings.transparent_background:
            canvas[..., :3] = np.array(parse_color(settings.background_color)) / 255.0
            canvas[..., 3] = 1.0

        for layer in layers:
            if not layer.enabled or layer.opacity <= 0:
                continue
            grid = self.layout_layer(adjusted, layer, out_w, out_h, scale, source_rgb)
            canvas = blend_onto(canvas, self.draw_grid(grid, out_w, out_h),
                                layer.opacity, layer.blend_mode)

        return to_image(canvas)

    def render_sequence(self, frames: Iterable[ImageLike], layers: Sequence[Layer],
                        settings: GlobalSettings, out_w: int, out_h: int,
                        scale: float = 1.0) -> Iterator[Image.Image]:
        """Run the full pipeline on each frame in turn."""
        for index, frame in enumerate(frames):
            logger.debug("Rendering frame %d", index)
            yield self.composite(frame, layers, settings, out_w, out_h, scale)


def to_image(rgba: np.ndarray) -> Image.Image:
    """Float RGBA in [0, 1] to an 8-bit RGBA image."""
    arr = np.floor(np.clip(rgba, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    return Image.fromarray(np.ascontiguousarray(arr))


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def composite_all(image: ImageLike, layers: Sequence[Layer], settings: Optional[GlobalSettings] = None,
                  out_w: Optional[int] = None, out_h: Optional[int] = None, scale: float = 1.0,
                  cache: Optional[LUTCache] = None) -> Image.Image:
    """
    Render a layer stack at a given size.

    Missing output dimensions default to the source size, keeping the
    source aspect ratio when only one is given.
    """
    settings = settings or GlobalSettings()
    src_h, src_w = to_rgb_array(image).shape[:2]
    if out_w is None and out_h is None:
        out_w, out_h = src_w, src_h
    elif out_h is None:
        out_h = int(math.floor(out_w * src_h / src_w + 0.5))
    elif out_w is None:
        out_w = int(math.floor(out_h * src_w / src_h + 0.5))

    return Compositor(cache).composite(image, layers, settings, out_w, out_h, scale)
