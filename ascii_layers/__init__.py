"""
ASCII Layers
============
Render images as stacked, independently configured ASCII glyph layers.
"""

from ascii_layers.auto_optimize import AutoOptimizer, auto_optimize_settings, luminance_histogram
from ascii_layers.calibration import CharacterLUT, GlyphBackend, LUTCache, default_cache
from ascii_layers.compositor import (
    BlendFunctions,
    Compositor,
    LayerGrid,
    blend_onto,
    composite_all,
    compute_layer_grid,
)
from ascii_layers.config import CurvePoint, GlobalSettings, Layer, Preset, Presets
from ascii_layers.constants import (
    BlendMode,
    CharacterSet,
    DitherMethod,
    IntensityAlgorithm,
    RenderMode,
)
from ascii_layers.dithering import Ditherer
from ascii_layers.exporters import (
    GlyphRecord,
    VectorDocument,
    VectorLayer,
    build_vector_document,
    render_svg,
    render_text,
)
from ascii_layers.intensity import IntensityEngine, StippleGenerator
from ascii_layers.tone import adjust_greyscale, adjust_image

__version__ = '0.1.0'

__all__ = [
    # Configuration
    'Layer',
    'GlobalSettings',
    'CurvePoint',
    'Preset',
    'Presets',

    # Enums
    'IntensityAlgorithm',
    'DitherMethod',
    'BlendMode',
    'RenderMode',

    # Character sets
    'CharacterSet',

    # Processors
    'AutoOptimizer',
    'IntensityEngine',
    'StippleGenerator',
    'Ditherer',
    'GlyphBackend',
    'CharacterLUT',
    'LUTCache',
    'BlendFunctions',
    'Compositor',
    'LayerGrid',

    # Formatters
    'GlyphRecord',
    'VectorLayer',
    'VectorDocument',

    # Convenience functions
    'composite_all',
    'render_text',
    'render_svg',
    'build_vector_document',
    'auto_optimize_settings',

    # Helper functions
    'adjust_greyscale',
    'adjust_image',
    'blend_onto',
    'compute_layer_grid',
    'default_cache',
    'luminance_histogram',
]
