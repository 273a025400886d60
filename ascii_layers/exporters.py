#!/usr/bin/env python3
"""
ASCII Layers - Exporters
========================
Plain-text and vector (SVG) renditions of a layer stack. Both reuse the
per-cell glyph computation of the compositor; only the output differs.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ascii_layers.calibration import LUTCache, default_cache
from ascii_layers.compositor import Compositor, compute_layer_grid
from ascii_layers.config import GlobalSettings, Layer
from ascii_layers.constants import TEXT_CHAR_ASPECT
from ascii_layers.field_ops import ImageLike, greyscale, to_rgb_array
from ascii_layers.tone import adjust_greyscale

logger = logging.getLogger(__name__)


# =============================================================================
# PLAIN TEXT
# =============================================================================

def text_grid_size(image_width: int, image_height: int, cols: int):
    """Rows for ``cols`` columns assuming glyphs half as wide as they are tall."""
    if cols <= 0 or image_width <= 0:
        return max(0, cols), 0
    rows = int(math.floor(cols * (image_height / image_width) * TEXT_CHAR_ASPECT + 0.5))
    return cols, rows


def render_text_lines(image: ImageLike, layers: Sequence[Layer],
                      settings: Optional[GlobalSettings] = None, cols: int = 120,
                      cache: Optional[LUTCache] = None) -> List[str]:
    """
    Render the layer stack to lines of plain text.

    Every enabled layer is sampled on the same ``cols``-wide grid; a later
    layer's glyph replaces whatever an earlier layer put in that cell, and
    cells a layer leaves empty keep the earlier glyph.

    Args:
        image: Source image
        layers: Layer stack, bottom first
        settings: Global adjustments
        cols: Number of columns
        cache: Lookup-table cache (process-wide cache if None)

    Returns:
        List of ``rows`` strings, each ``cols`` characters long
    """
    settings = settings or GlobalSettings()
    cache = cache if cache is not None else default_cache()

    rgb = to_rgb_array(image)
    cols, rows = text_grid_size(rgb.shape[1], rgb.shape[0], cols)
    if cols <= 0 or rows <= 0:
        return []

    adjusted = adjust_greyscale(greyscale(rgb), settings)
    cells = [[' '] * cols for _ in range(rows)]

    for layer in layers:
        if not layer.enabled or layer.opacity <= 0:
            continue
        lut = cache.get(layer.glyphs, layer.font_family, layer.font_size)
        grid = compute_layer_grid(adjusted, layer, cols, rows, lut)
        for row, line in enumerate(grid.text_lines()):
            for col, glyph in enumerate(line):
                if glyph != ' ':
                    cells[row][col] = glyph

    logger.debug("Text export: %dx%d", cols, rows)
    return [''.join(line) for line in cells]


def render_text(image: ImageLike, layers: Sequence[Layer],
                settings: Optional[GlobalSettings] = None, cols: int = 120,
                cache: Optional[LUTCache] = None) -> str:
    """Render the layer stack to a newline-joined text grid."""
    return '\n'.join(render_text_lines(image, layers, settings, cols, cache))


# =============================================================================
# VECTOR
# =============================================================================

def _escape(text: str) -> str:
    return (text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')
            .replace('"', '&quot;'))


def _num(value: float) -> str:
    return f"{value:.2f}".rstrip('0').rstrip('.')


@dataclass
class GlyphRecord:
    """One positioned glyph."""
    x: float
    y: float
    glyph: str
    color: str


@dataclass
class VectorLayer:
    """Glyphs of one layer with their shared font and compositing attributes."""
    name: str
    font_family: str
    font_size: float
    opacity: float
    blend_mode: str
    color: str
    glyphs: List[GlyphRecord] = field(default_factory=list)


@dataclass
class VectorDocument:
    """Resolution-independent rendering of a layer stack."""
    width: int
    height: int
    background: Optional[str] = None
    layers: List[VectorLayer] = field(default_factory=list)

    @property
    def glyph_count(self) -> int:
        return sum(len(layer.glyphs) for layer in self.layers)

    def to_svg(self) -> str:
        """Serialize as an SVG document."""
        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">'
        ]
        if self.background:
            parts.append(f'<rect width="100%" height="100%" fill="{_escape(self.background)}"/>')

        for layer in self.layers:
            parts.append(
                f'<g data-name="{_escape(layer.name)}" '
                f'font-family="{_escape(layer.font_family)}, monospace" '
                f'font-size="{_num(layer.font_size)}" fill="{_escape(layer.color)}" '
                f'opacity="{_num(layer.opacity)}" style="mix-blend-mode:{layer.blend_mode}" '
                f'dominant-baseline="text-before-edge" xml:space="preserve">'
            )
            for record in layer.glyphs:
                fill = '' if record.color == layer.color else f' fill="{_escape(record.color)}"'
                parts.append(f'<text x="{_num(record.x)}" y="{_num(record.y)}"{fill}>'
                             f'{_escape(record.glyph)}</text>')
            parts.append('</g>')

        parts.append('</svg>')
        return '\n'.join(parts)


def build_vector_document(image: ImageLike, layers: Sequence[Layer],
                          settings: Optional[GlobalSettings] = None,
                          out_w: int = 1000, out_h: Optional[int] = None,
                          scale: float = 1.0, cache: Optional[LUTCache] = None) -> VectorDocument:
    """
    Lay out every enabled layer and collect one record per drawn glyph.

    Args:
        image: Source image
        layers: Layer stack, bottom first
        settings: Global adjustments and background
        out_w: Document width
        out_h: Document height (source aspect ratio if None)
        scale: Multiplier on font sizes and spacing
        cache: Lookup-table cache (process-wide cache if None)

    Returns:
        VectorDocument
    """
    settings = settings or GlobalSettings()
    rgb = to_rgb_array(image)
    if out_h is None:
        out_h = int(math.floor(out_w * rgb.shape[0] / rgb.shape[1] + 0.5))

    compositor = Compositor(cache)
    adjusted = adjust_greyscale(greyscale(rgb), settings)
    background = None if settings.transparent_background else settings.background_color
    document = VectorDocument(out_w, out_h, background)

    for layer in layers:
        if not layer.enabled or layer.opacity <= 0:
            continue
        grid = compositor.layout_layer(adjusted, layer, out_w, out_h, scale, rgb)
        vector_layer = VectorLayer(layer.name, layer.font_family, grid.font_size,
                                   layer.opacity, layer.blend_mode.value, layer.color)
        for row, col, glyph in grid.cells():
            r, g, b = grid.cell_color(row, col)
            color = layer.color if grid.colors is None else f"#{r:02x}{g:02x}{b:02x}"
            vector_layer.glyphs.append(
                GlyphRecord(col * grid.cell_width, row * grid.cell_height, glyph, color))
        document.layers.append(vector_layer)

    logger.debug("Vector export: %d glyphs in %d layers", document.glyph_count, len(document.layers))
    return document


def render_svg(image: ImageLike, layers: Sequence[Layer], settings: Optional[GlobalSettings] = None,
               out_w: int = 1000, out_h: Optional[int] = None, scale: float = 1.0,
               cache: Optional[LUTCache] = None) -> str:
    """Shortcut for ``build_vector_document(...).to_svg()``."""
    return build_vector_document(image, layers, settings, out_w, out_h, scale, cache).to_svg()
