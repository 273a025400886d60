#!/usr/bin/env python3
"""
ASCII Layers - Configuration
============================
Layer and global settings dataclasses, plus built-in presets.
"""

import uuid
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from ascii_layers.constants import (
    TRANSPARENT,
    BlendMode,
    CharacterSet,
    DitherMethod,
    IntensityAlgorithm,
    RenderMode,
    coerce_enum,
)


# =============================================================================
# TONE CURVE
# =============================================================================

@dataclass(frozen=True)
class CurvePoint:
    """A tone-curve control point in the unit square."""
    x: float
    y: float

    def clamped(self) -> 'CurvePoint':
        return CurvePoint(min(1.0, max(0.0, float(self.x))),
                          min(1.0, max(0.0, float(self.y))))


def identity_curve() -> List[CurvePoint]:
    return [CurvePoint(0.0, 0.0), CurvePoint(1.0, 1.0)]


def _as_curve(points: Sequence[Union[CurvePoint, Tuple[float, float], Mapping[str, float]]]) -> List[CurvePoint]:
    curve = []
    for p in points:
        if isinstance(p, CurvePoint):
            curve.append(p)
        elif isinstance(p, Mapping):
            curve.append(CurvePoint(float(p['x']), float(p['y'])))
        else:
            x, y = p
            curve.append(CurvePoint(float(x), float(y)))
    return curve


# =============================================================================
# LAYER
# =============================================================================

@dataclass
class Layer:
    """One independently configured glyph-grid rendering pass."""

    # Identity
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = 'Layer'
    enabled: bool = True

    # Typography
    font_size: float = 12                    # Font size in px (before output scale)
    font_family: str = 'Courier New'
    ramp: str = CharacterSet.STANDARD        # Candidate glyphs, duplicates collapse
    char_spacing: float = 0                  # Extra px between characters

    # Intensity and quantization
    algorithm: IntensityAlgorithm = IntensityAlgorithm.BRIGHTNESS
    dithering: DitherMethod = DitherMethod.NONE
    invert: bool = False
    contrast: float = 100                    # Percent, 100 = unchanged
    threshold: float = 5                     # Minimum intensity that draws a glyph
    edge_sensitivity: float = 100            # Percent scale on Sobel magnitude
    render_mode: RenderMode = RenderMode.DARK_ON_LIGHT

    # Compositing
    opacity: float = 1.0
    blend_mode: BlendMode = BlendMode.DARKEN
    color: str = '#000000'
    color_mode: bool = False                 # Tint glyphs with the source color

    # Coerced on every assignment, so live edits behave like construction
    _ENUM_FIELDS = {
        'algorithm': IntensityAlgorithm,
        'dithering': DitherMethod,
        'blend_mode': BlendMode,
        'render_mode': RenderMode,
    }

    def __setattr__(self, name, value):
        enum_cls = self._ENUM_FIELDS.get(name)
        if enum_cls is not None:
            value = coerce_enum(enum_cls, value)
        elif name == 'opacity':
            value = min(1.0, max(0.0, float(value)))
        super().__setattr__(name, value)

    @property
    def glyphs(self) -> str:
        """Ramp with duplicates collapsed, never empty."""
        unique = ''.join(dict.fromkeys(self.ramp or ''))
        return unique or ' '

    @property
    def dark_on_light(self) -> bool:
        return self.render_mode == RenderMode.DARK_ON_LIGHT

    def copy(self, **changes) -> 'Layer':
        """Copy with a fresh id unless one is given."""
        changes.setdefault('id', uuid.uuid4().hex)
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Layer':
        """Build a layer from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# =============================================================================
# GLOBAL SETTINGS
# =============================================================================

@dataclass
class GlobalSettings:
    """Image-wide tone adjustments applied before any layer is rendered."""

    contrast: float = 100                    # Percent, 100 = unchanged
    brightness: float = 0                    # Added after levels
    gamma: float = 1.0                       # Exponent, > 0
    invert: bool = False

    black_point: float = 0                   # Levels input black
    white_point: float = 255                 # Levels input white
    blur: float = 0                          # Gaussian radius, 0 = off
    sharpen: float = 0                       # Unsharp amount in percent
    posterize: int = 0                       # 0 = off, else number of levels
    high_pass_radius: float = 0              # Background removal, 0 = off

    background_color: str = TRANSPARENT      # Hex color or 'transparent'
    tone_curve: List[CurvePoint] = field(default_factory=identity_curve)

    def __post_init__(self):
        self.tone_curve = _as_curve(self.tone_curve) or identity_curve()
        if self.gamma <= 0:
            self.gamma = 1.0

    @property
    def transparent_background(self) -> bool:
        return not self.background_color or self.background_color.lower() == TRANSPARENT

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'GlobalSettings':
        """Build settings from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def merged(self, **changes) -> 'GlobalSettings':
        """Copy with the given fields replaced."""
        return replace(self, **changes)


# =============================================================================
# PRESETS
# =============================================================================

@dataclass
class Preset:
    """A named stack of layers and the settings they were tuned for."""
    name: str
    layers: List[Layer]
    settings: GlobalSettings


class Presets:
    """Built-in layer stacks."""

    @staticmethod
    def default() -> Preset:
        """Fine dither, mid-size detail and coarse edges."""
        return Preset('Default', [
            Layer(name='Fine Dither', font_size=5, ramp=CharacterSet.DETAILED,
                  dithering=DitherMethod.ATKINSON, opacity=0.6),
            Layer(name='Medium', font_size=12, ramp=CharacterSet.STANDARD,
                  algorithm=IntensityAlgorithm.DETAIL,
                  dithering=DitherMethod.FLOYD_STEINBERG, contrast=120),
            Layer(name='Edges', font_size=22, ramp=CharacterSet.DENSE,
                  algorithm=IntensityAlgorithm.EDGES, contrast=150, threshold=10,
                  edge_sensitivity=120),
        ], GlobalSettings())

    @staticmethod
    def sketch() -> Preset:
        return Preset('Sketch', [
            Layer(name='Hatching', font_size=10, ramp=CharacterSet.HATCHING,
                  algorithm=IntensityAlgorithm.EDGES, contrast=200, edge_sensitivity=150),
            Layer(name='Detail', font_size=6, ramp='/|\\-. ',
                  algorithm=IntensityAlgorithm.DETAIL, dithering=DitherMethod.ATKINSON,
                  contrast=80, opacity=0.5),
        ], GlobalSettings(sharpen=100))

    @staticmethod
    def halftone() -> Preset:
        return Preset('Halftone', [
            Layer(name='Dots', font_size=8, ramp=CharacterSet.DOTS,
                  dithering=DitherMethod.ORDERED, contrast=120),
        ], GlobalSettings())

    @staticmethod
    def matrix() -> Preset:
        # Light glyphs on a dark background are invisible under darken, so normal
        return Preset('Matrix', [
            Layer(name='Code', font_size=10, ramp='01 ', color='#00ff41',
                  dithering=DitherMethod.FLOYD_STEINBERG, contrast=150,
                  render_mode=RenderMode.LIGHT_ON_DARK, blend_mode=BlendMode.NORMAL),
        ], GlobalSettings(background_color='#000000'))

    @staticmethod
    def typewriter() -> Preset:
        return Preset('Typewriter', [
            Layer(name='Type', font_size=14, ramp=CharacterSet.STANDARD, contrast=140),
        ], GlobalSettings(posterize=4))

    @staticmethod
    def blueprint() -> Preset:
        # Normal blending, as for Matrix
        return Preset('Blueprint', [
            Layer(name='Lines', font_size=8, ramp=CharacterSet.DENSE, color='#ffffff',
                  algorithm=IntensityAlgorithm.EDGES, contrast=200, edge_sensitivity=180,
                  render_mode=RenderMode.LIGHT_ON_DARK, blend_mode=BlendMode.NORMAL),
            Layer(name='Fill', font_size=6, ramp=CharacterSet.SIMPLE, color='#88bbff',
                  dithering=DitherMethod.ATKINSON, contrast=60, opacity=0.4,
                  render_mode=RenderMode.LIGHT_ON_DARK, blend_mode=BlendMode.NORMAL),
        ], GlobalSettings(background_color='#1a3a5c'))

    @staticmethod
    def retro_terminal() -> Preset:
        return Preset('Retro Terminal', [
            Layer(name='CP437', font_size=8, ramp=CharacterSet.CODE_PAGE_437, color='#33ff33',
                  dithering=DitherMethod.ORDERED, contrast=130,
                  render_mode=RenderMode.LIGHT_ON_DARK, blend_mode=BlendMode.NORMAL),
        ], GlobalSettings(background_color='#0a0a0a', posterize=6))

    @staticmethod
    def neon() -> Preset:
        return Preset('Neon', [
            Layer(name='Glow', font_size=10, ramp=CharacterSet.BLOCKS_AND_SHAPES, color_mode=True,
                  dithering=DitherMethod.FLOYD_STEINBERG, contrast=160,
                  render_mode=RenderMode.LIGHT_ON_DARK, blend_mode=BlendMode.NORMAL),
            Layer(name='Edges', font_size=14, ramp=CharacterSet.BLOCKS_AND_SHAPES, color='#ff00ff',
                  algorithm=IntensityAlgorithm.EDGES, contrast=250, edge_sensitivity=200,
                  opacity=0.7),
        ], GlobalSettings(background_color='#0d0d0d', sharpen=80))

    @staticmethod
    def stencil() -> Preset:
        return Preset('Stencil', [
            Layer(name='Fill', font_size=16, ramp=CharacterSet.ALPHABETIC,
                  dithering=DitherMethod.ATKINSON, contrast=200, threshold=40),
        ], GlobalSettings(posterize=3))

    @staticmethod
    def mosaic() -> Preset:
        return Preset('Mosaic', [
            Layer(name='Blocks', font_size=12, ramp=CharacterSet.BLOCKS_AND_SHAPES, color_mode=True,
                  dithering=DitherMethod.ORDERED),
        ], GlobalSettings())

    @staticmethod
    def math_art() -> Preset:
        return Preset('Math Art', [
            Layer(name='Symbols', font_size=10, ramp=CharacterSet.MATH_AND_SYMBOLS,
                  algorithm=IntensityAlgorithm.DETAIL, dithering=DitherMethod.FLOYD_STEINBERG,
                  contrast=130, edge_sensitivity=120),
        ], GlobalSettings(sharpen=60))

    @staticmethod
    def arrows() -> Preset:
        return Preset('Arrows', [
            Layer(name='Flow', font_size=12, ramp=CharacterSet.ARROWS_AND_CHEVRONS,
                  algorithm=IntensityAlgorithm.DETAIL, dithering=DitherMethod.ATKINSON,
                  contrast=140, edge_sensitivity=130),
        ], GlobalSettings(sharpen=50))

    @staticmethod
    def color_photo() -> Preset:
        return Preset('Color Photo', [
            Layer(name='Fine', font_size=4, ramp=CharacterSet.DETAILED, color_mode=True,
                  dithering=DitherMethod.ATKINSON),
            Layer(name='Detail', font_size=10, ramp=CharacterSet.DENSE, color_mode=True,
                  algorithm=IntensityAlgorithm.DETAIL, dithering=DitherMethod.FLOYD_STEINBERG,
                  contrast=120, opacity=0.6),
        ], GlobalSettings(background_color='#ffffff'))

    @staticmethod
    def newspaper() -> Preset:
        return Preset('Newspaper', [
            Layer(name='Halftone', font_size=6, ramp=CharacterSet.DOTS,
                  dithering=DitherMethod.ORDERED, contrast=110),
        ], GlobalSettings(background_color='#f5f0e8', posterize=8))

    @staticmethod
    def high_contrast() -> Preset:
        return Preset('High Contrast', [
            Layer(name='Bold', font_size=10, ramp=CharacterSet.BINARY,
                  dithering=DitherMethod.FLOYD_STEINBERG, contrast=200),
            Layer(name='Edges', font_size=20, ramp='#. ',
                  algorithm=IntensityAlgorithm.EDGES, contrast=300,
                  edge_sensitivity=200, opacity=0.8),
        ], GlobalSettings(black_point=30, white_point=220))

    @classmethod
    def all(cls) -> Dict[str, Preset]:
        """All built-in presets keyed by display name."""
        presets = [cls.default(), cls.sketch(), cls.halftone(), cls.matrix(), cls.typewriter(),
                   cls.blueprint(), cls.retro_terminal(), cls.neon(), cls.stencil(), cls.mosaic(),
                   cls.math_art(), cls.high_contrast(), cls.newspaper(), cls.arrows(),
                   cls.color_photo()]
        return {p.name: p for p in presets}
