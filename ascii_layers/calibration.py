#!/usr/bin/env python3
"""
ASCII Layers - Character Density Calibration
============================================
Measures how much ink each glyph actually puts on screen at a given font and
size, and builds a 256-entry intensity -> glyph lookup table ordered by that
measured coverage.

The glyph backend is the only environment-dependent piece: it wraps Pillow's
font rasterizer and can be replaced (e.g. in tests) without touching the
calibration logic.
"""

import logging
import math
import os
import platform
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from ascii_layers.constants import ADVANCE_GLYPH, CELL_HEIGHT_FACTOR

logger = logging.getLogger(__name__)


# =============================================================================
# GLYPH BACKEND
# =============================================================================

def _system_font_dirs() -> List[str]:
    system = platform.system().lower()
    if 'darwin' in system:
        return ['/System/Library/Fonts', '/System/Library/Fonts/Supplemental', '/Library/Fonts']
    if 'windows' in system:
        return [os.path.join(os.environ.get('WINDIR', r'C:\Windows'), 'Fonts')]
    return ['/usr/share/fonts/truetype/dejavu', '/usr/share/fonts/truetype/liberation',
            '/usr/share/fonts/truetype/noto', '/usr/share/fonts/truetype/ubuntu']


class GlyphBackend:
    """Pillow-based font resolution, glyph measurement and drawing."""

    # Font files tried, in order, for well-known family names
    FAMILY_FILES = {
        'courier new': ['cour.ttf', 'Courier New.ttf', 'LiberationMono-Regular.ttf'],
        'courier': ['cour.ttf', 'Courier New.ttf', 'LiberationMono-Regular.ttf'],
        'consolas': ['consola.ttf', 'CONSOLA.TTF'],
        'menlo': ['Menlo.ttc'],
        'monaco': ['Monaco.ttf'],
        'dejavu sans mono': ['DejaVuSansMono.ttf'],
        'liberation mono': ['LiberationMono-Regular.ttf'],
    }

    # Generic monospace fallbacks
    MONOSPACE_FILES = [
        'DejaVuSansMono.ttf', 'LiberationMono-Regular.ttf', 'NotoSansMono-Regular.ttf',
        'UbuntuMono-R.ttf', 'Menlo.ttc', 'Monaco.ttf', 'CONSOLA.TTF', 'cour.ttf',
    ]

    def __init__(self):
        self._fonts: Dict[Tuple[str, int], ImageFont.ImageFont] = {}

    @staticmethod
    def pixel_size(font_size: float) -> int:
        return max(1, int(math.floor(font_size + 0.5)))

    def _candidates(self, family: str) -> List[str]:
        names = [family, f"{family}.ttf", f"{family.replace(' ', '')}.ttf"]
        names += self.FAMILY_FILES.get(family.strip().lower(), [])
        names += self.MONOSPACE_FILES

        candidates = []
        for name in names:
            candidates.append(name)
            for directory in _system_font_dirs():
                candidates.append(os.path.join(directory, name))
        return candidates

    def font(self, family: str, font_size: float) -> ImageFont.ImageFont:
        """Resolve ``family`` at ``font_size`` px, falling back to Pillow's default font."""
        key = (family, self.pixel_size(font_size))
        if key in self._fonts:
            return self._fonts[key]

        size = key[1]
        resolved = None
        for candidate in self._candidates(family):
            try:
                resolved = ImageFont.truetype(candidate, size)
                break
            except OSError:
                continue

        if resolved is None:
            logger.warning("No font file found for %r, using Pillow's default font", family)
            resolved = ImageFont.load_default(size=size)
        else:
            logger.debug("Resolved font %r at %dpx to %s", family, size, candidate)

        self._fonts[key] = resolved
        return resolved

    def advance(self, family: str, font_size: float) -> float:
        """Horizontal advance of one monospace cell."""
        return float(self.font(family, font_size).getlength(ADVANCE_GLYPH))

    def cell_size(self, family: str, font_size: float) -> Tuple[int, int]:
        """Measurement cell: advance width by 1.2x font size, rounded up."""
        width = max(1, math.ceil(self.advance(family, font_size)))
        height = max(1, math.ceil(font_size * CELL_HEIGHT_FACTOR))
        return width, height

    def density(self, glyph: str, family: str, font_size: float) -> float:
        """Fraction of the measurement cell covered by the glyph's ink."""
        if glyph == ' ':
            return 0.0

        width, height = self.cell_size(family, font_size)
        cell = Image.new('RGBA', (width, height), (0, 0, 0, 0))
        ImageDraw.Draw(cell).text((0, 0), glyph, font=self.font(family, font_size),
                                  fill=(255, 255, 255, 255))

        alpha = np.asarray(cell.split()[3])
        return float(np.count_nonzero(alpha)) / float(width * height)

    def draw_glyph(self, draw: ImageDraw.ImageDraw, xy: Tuple[float, float], glyph: str,
                   family: str, font_size: float, fill: Union[int, Tuple[int, ...]]) -> None:
        draw.text(xy, glyph, font=self.font(family, font_size), fill=fill)


# =============================================================================
# LOOKUP TABLE
# =============================================================================

@dataclass(frozen=True)
class CharacterLUT:
    """Maps each 8-bit intensity to the glyph whose density best matches it."""

    table: Tuple[str, ...]                       # 256 glyphs
    densities: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def build(cls, glyphs: str, densities: Dict[str, float]) -> 'CharacterLUT':
        """
        Build the table from measured densities.

        Glyphs are sorted ascending by density (ties keep their order in
        ``glyphs``). Each of the 256 targets, spaced linearly between the
        lowest and highest density, takes the nearest glyph; the first
        glyph wins a tie.

        Args:
            glyphs: Candidate glyphs (duplicates ignored, at least one)
            densities: Measured density per glyph

        Returns:
            CharacterLUT
        """
        unique = list(dict.fromkeys(glyphs)) or [' ']
        ordered = sorted(unique, key=lambda ch: densities.get(ch, 0.0))
        measured = np.array([densities.get(ch, 0.0) for ch in ordered], dtype=np.float64)

        min_d = measured[0]
        max_d = measured[-1]
        density_range = (max_d - min_d) or 1.0

        targets = min_d + (np.arange(256) / 255.0) * density_range
        nearest = np.argmin(np.abs(measured[None, :] - targets[:, None]), axis=1)

        table = tuple(ordered[i] for i in nearest)
        return cls(table=table, densities={ch: float(densities.get(ch, 0.0)) for ch in ordered})

    @property
    def degenerate(self) -> bool:
        """True when every glyph measured the same density."""
        values = list(self.densities.values())
        return len(set(values)) <= 1

    def __getitem__(self, intensity: int) -> str:
        return self.table[min(255, max(0, int(intensity)))]

    def __len__(self) -> int:
        return len(self.table)

    def lookup(self, intensity: np.ndarray) -> np.ndarray:
        """Glyph array for an intensity field (values rounded and clamped)."""
        idx = np.clip(np.floor(np.asarray(intensity, dtype=np.float64) + 0.5), 0, 255).astype(np.int64)
        return np.asarray(self.table, dtype=object)[idx]


# =============================================================================
# CACHE
# =============================================================================

class LUTCache:
    """
    Memoizes lookup tables per (font family, font size, glyph set).

    Entries are immutable once built, so tables may be shared between
    layers and renders.
    """

    def __init__(self, backend: Optional[GlyphBackend] = None):
        self.backend = backend or GlyphBackend()
        self._entries: Dict[Tuple[str, float, str], CharacterLUT] = {}

    @staticmethod
    def key(glyphs: str, family: str, font_size: float) -> Tuple[str, float, str]:
        return (family, float(font_size), ''.join(sorted(set(glyphs or ' '))))

    def get(self, glyphs: str, family: str, font_size: float) -> CharacterLUT:
        """Return the cached table, measuring and building it on first use."""
        key = self.key(glyphs, family, font_size)
        lut = self._entries.get(key)
        if lut is not None:
            logger.debug("LUT cache hit for %s %spx", family, font_size)
            return lut

        glyph_set = key[2]
        densities = {ch: self.backend.density(ch, family, font_size) for ch in glyph_set}
        lut = CharacterLUT.build(glyph_set, densities)
        if lut.degenerate and len(glyph_set) > 1:
            logger.warning("All glyphs in %r measured the same density at %s %spx; "
                           "the lookup table will select a single glyph",
                           glyph_set, family, font_size)

        logger.debug("Calibrated %d glyphs for %s %spx", len(glyph_set), family, font_size)
        self._entries[key] = lut
        return lut

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries


_default_cache = LUTCache()


def default_cache() -> LUTCache:
    """Process-wide cache shared by renders that do not pass their own."""
    return _default_cache
