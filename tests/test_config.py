import pytest

from ascii_layers.config import CurvePoint, GlobalSettings, Layer, Presets
from ascii_layers.constants import (
    BlendMode,
    CharacterSet,
    DitherMethod,
    IntensityAlgorithm,
    RenderMode,
    coerce_enum,
)


def test_layer_defaults():
    layer = Layer()
    assert layer.ramp == CharacterSet.STANDARD
    assert layer.algorithm is IntensityAlgorithm.BRIGHTNESS
    assert layer.dithering is DitherMethod.NONE
    assert layer.blend_mode is BlendMode.DARKEN
    assert layer.dark_on_light
    assert len(layer.id) == 32


def test_string_enums_are_coerced():
    layer = Layer(algorithm='edges', dithering='floyd_steinberg', blend_mode='COLOR_BURN',
                  render_mode='light-on-dark')
    assert layer.algorithm is IntensityAlgorithm.EDGES
    assert layer.dithering is DitherMethod.FLOYD_STEINBERG
    assert layer.blend_mode is BlendMode.COLOR_BURN
    assert layer.render_mode is RenderMode.LIGHT_ON_DARK


def test_unknown_enum_name_raises():
    with pytest.raises(ValueError, match='DitherMethod'):
        coerce_enum(DitherMethod, 'sierra')


def test_ramp_collapses_duplicates_and_never_empties():
    assert Layer(ramp='@@##  ').glyphs == '@# '
    assert Layer(ramp='').glyphs == ' '


def test_opacity_is_clamped():
    assert Layer(opacity=1.5).opacity == 1.0
    assert Layer(opacity=-1).opacity == 0.0


def test_copy_gets_fresh_id():
    layer = Layer(name='A')
    clone = layer.copy(name='B')
    assert clone.id != layer.id
    assert clone.name == 'B' and layer.name == 'A'


def test_from_dict_ignores_unknown_keys():
    layer = Layer.from_dict({'name': 'X', 'blend_mode': 'screen', 'unused': 1})
    assert layer.name == 'X'
    assert layer.blend_mode is BlendMode.SCREEN

    settings = GlobalSettings.from_dict({'gamma': 2.0, 'bogus': True})
    assert settings.gamma == 2.0


def test_settings_normalize_curve_and_gamma():
    settings = GlobalSettings(gamma=0, tone_curve=[])
    assert settings.gamma == 1.0
    assert settings.tone_curve == [CurvePoint(0.0, 0.0), CurvePoint(1.0, 1.0)]
    assert settings.transparent_background
    assert not settings.merged(background_color='#000000').transparent_background


def test_character_set_presets():
    assert CharacterSet.get_preset('Blocks') == CharacterSet.BLOCKS
    assert CharacterSet.get_preset('xyz ') == 'xyz '
    assert all(ramp for ramp in CharacterSet.presets().values())


def test_builtin_presets():
    presets = Presets.all()
    assert set(presets) == {'Default', 'Sketch', 'Halftone', 'Matrix', 'Typewriter',
                            'Blueprint', 'Retro Terminal', 'Neon', 'Stencil', 'Mosaic',
                            'Math Art', 'High Contrast', 'Newspaper', 'Arrows', 'Color Photo'}
    for preset in presets.values():
        assert preset.layers
        assert all(isinstance(layer.blend_mode, BlendMode) for layer in preset.layers)
    assert Presets.matrix().settings.background_color == '#000000'


def test_presets_use_every_declared_ramp():
    ramps = {layer.ramp for preset in Presets.all().values() for layer in preset.layers}
    for ramp in (CharacterSet.CODE_PAGE_437, CharacterSet.BLOCKS_AND_SHAPES, CharacterSet.ALPHABETIC,
                 CharacterSet.MATH_AND_SYMBOLS, CharacterSet.ARROWS_AND_CHEVRONS):
        assert ramp in ramps


def test_source_color_presets():
    assert all(layer.color_mode for layer in Presets.color_photo().layers)
    assert Presets.mosaic().layers[0].color_mode
    assert Presets.stencil().layers[0].threshold == 40
    assert Presets.retro_terminal().settings.posterize == 6


def test_live_edits_are_coerced():
    layer = Layer()
    layer.algorithm = 'edges'
    layer.dithering = 'ORDERED'
    layer.opacity = 3
    assert layer.algorithm is IntensityAlgorithm.EDGES
    assert layer.dithering is DitherMethod.ORDERED
    assert layer.opacity == 1.0
    with pytest.raises(ValueError):
        layer.blend_mode = 'glow'
