#!/usr/bin/env python3
"""
ASCII Layers - Constants
========================
Enumerations, character ramps and fixed numeric constants shared by the
rendering pipeline.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Type, TypeVar, Union

import numpy as np


# =============================================================================
# ENUMS
# =============================================================================

class IntensityAlgorithm(Enum):
    """Algorithm deriving per-cell ink demand from the adjusted field."""
    BRIGHTNESS = 'brightness'
    EDGES = 'edges'
    HIGHPASS = 'highpass'
    DETAIL = 'detail'
    STIPPLE = 'stipple'


class DitherMethod(Enum):
    """Quantization strategy applied to a layer's intensity field."""
    NONE = 'none'
    FLOYD_STEINBERG = 'floyd-steinberg'
    ATKINSON = 'atkinson'
    STUCKI = 'stucki'
    ORDERED = 'ordered'


class BlendMode(Enum):
    """How a layer is blended onto the accumulated output."""
    NORMAL = 'normal'
    MULTIPLY = 'multiply'
    SCREEN = 'screen'
    OVERLAY = 'overlay'
    DARKEN = 'darken'
    LIGHTEN = 'lighten'
    COLOR_BURN = 'color-burn'
    HARD_LIGHT = 'hard-light'
    DIFFERENCE = 'difference'


class RenderMode(Enum):
    """Whether glyphs encode darkness (ink on paper) or lightness (glow)."""
    DARK_ON_LIGHT = 'dark-on-light'
    LIGHT_ON_DARK = 'light-on-dark'


E = TypeVar('E', bound=Enum)


def coerce_enum(enum_cls: Type[E], value: Union[str, E]) -> E:
    """
    Convert a string name or value into a member of ``enum_cls``.

    Accepts the enum value (``'floyd-steinberg'``), the member name
    (``'FLOYD_STEINBERG'``) or the usual underscore spelling
    (``'floyd_steinberg'``).

    Raises:
        ValueError: If the value matches no member.
    """
    if isinstance(value, enum_cls):
        return value

    key = str(value).strip().lower()
    for member in enum_cls:
        if key in (member.value, member.name.lower(), member.value.replace('-', '_')):
            return member

    choices = ', '.join(m.value for m in enum_cls)
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r} (expected one of {choices})")


# =============================================================================
# CHARACTER RAMPS
# =============================================================================

@dataclass
class CharacterSet:
    """Predefined character ramps (dense to light)."""

    STANDARD: str = "@%#*+=-:. "
    DETAILED: str = "$@B%8&WM#*oahkbdpqwmZO0QLCJUYXzcvunxrjft/\\|()1{}[]?-_+~<>i!lI;:,\"^`'. "
    SIMPLE: str = "#=-. "
    BLOCKS: str = "█▓▒░ "
    DENSE: str = "@#MW&%*+=-:. "
    MINIMAL: str = "@. "
    HATCHING: str = "#/|\\-. "
    DOTS: str = "@o:. "
    BINARY: str = "@ "
    CODE_PAGE_437: str = "█▓▒░■≡÷·. "
    BLOCKS_AND_SHAPES: str = "█▉▊▋▌▍▎▏■□▪▫● "
    ALPHABETIC: str = "MWNHBEKRDAXQGOUZYVTLJIFC "
    MATH_AND_SYMBOLS: str = "∑∏∫≡≈±×÷∞∂√∆=+-·. "
    ARROWS_AND_CHEVRONS: str = "⇛⇒→⟩›»>-·. "

    @classmethod
    def presets(cls) -> Dict[str, str]:
        """All presets keyed by lower-case name."""
        return {
            'standard': cls.STANDARD,
            'detailed': cls.DETAILED,
            'simple': cls.SIMPLE,
            'blocks': cls.BLOCKS,
            'dense': cls.DENSE,
            'minimal': cls.MINIMAL,
            'hatching': cls.HATCHING,
            'dots': cls.DOTS,
            'binary': cls.BINARY,
            'code_page_437': cls.CODE_PAGE_437,
            'blocks_and_shapes': cls.BLOCKS_AND_SHAPES,
            'alphabetic': cls.ALPHABETIC,
            'math_and_symbols': cls.MATH_AND_SYMBOLS,
            'arrows_and_chevrons': cls.ARROWS_AND_CHEVRONS,
        }

    @classmethod
    def get_preset(cls, name: str) -> str:
        """Get a ramp by preset name; unknown names are returned as a custom ramp."""
        return cls.presets().get(name.lower().replace(' ', '_'), name)


# =============================================================================
# PIPELINE CONSTANTS
# =============================================================================

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# Character cell height relative to font size
CELL_HEIGHT_FACTOR = 1.2

# Glyph used to measure a font's advance width
ADVANCE_GLYPH = 'M'

# Cells whose final intensity is below this are left empty
MIN_VISIBLE_INTENSITY = 3

# Height/width aspect assumed for plain-text output
TEXT_CHAR_ASPECT = 0.5

# Number of box-blur passes approximating a Gaussian, and radius divisor
GAUSSIAN_PASSES = 3
GAUSSIAN_RADIUS_DIVISOR = 1.73

# Fixed blur radius used by the unsharp mask and the high-pass algorithms
UNSHARP_RADIUS = 2
HIGHPASS_RADIUS = 3

# Stipple generator (linear congruential)
STIPPLE_SEED = 42
LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MASK = 0x7FFFFFFF

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.float64)

BAYER_4 = np.array([
    [0, 8, 2, 10],
    [12, 4, 14, 6],
    [3, 11, 1, 9],
    [15, 7, 13, 5]
], dtype=np.float64)

TRANSPARENT = 'transparent'
