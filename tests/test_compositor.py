import numpy as np
import pytest
from PIL import Image

from ascii_layers.calibration import LUTCache
from ascii_layers.compositor import (
    BlendFunctions,
    Compositor,
    LayerGrid,
    blend_onto,
    composite_all,
    compute_layer_grid,
)
from ascii_layers.config import GlobalSettings, Layer
from ascii_layers.constants import BlendMode, IntensityAlgorithm
from ascii_layers.field_ops import greyscale
from ascii_layers.tone import adjust_greyscale


def _probe_layer(**kwargs):
    params = dict(ramp='@ ', algorithm=IntensityAlgorithm.BRIGHTNESS, contrast=100, threshold=5)
    params.update(kwargs)
    return Layer(**params)


def _grid(image, layer, cache, cols=1, rows=1):
    adjusted = adjust_greyscale(greyscale(image), GlobalSettings())
    lut = cache.get(layer.glyphs, layer.font_family, layer.font_size)
    return compute_layer_grid(adjusted, layer, cols, rows, lut)


def test_white_image_gives_blank_cell(white_image, cache):
    grid = _grid(white_image, _probe_layer(), cache)
    assert grid.text_lines() == [' ']
    assert list(grid.cells()) == []


def test_black_image_gives_densest_glyph(black_image, cache):
    grid = _grid(black_image, _probe_layer(), cache, cols=2, rows=2)
    assert grid.text_lines() == ['@@', '@@']


def test_low_intensity_cells_are_skipped(cache):
    img = Image.new('L', (1, 1), 253)
    grid = _grid(img, _probe_layer(ramp='@.', threshold=0), cache)
    # Darkness 2 maps to '.', but is below the visibility floor
    assert grid.glyphs[0, 0] == '.'
    assert list(grid.cells()) == []


def test_source_colors_are_sampled(cache):
    img = Image.new('RGB', (4, 4), (200, 0, 0))
    layer = _probe_layer(color_mode=True, threshold=0)
    adjusted = adjust_greyscale(greyscale(img), GlobalSettings())
    lut = cache.get(layer.glyphs, layer.font_family, layer.font_size)
    grid = compute_layer_grid(adjusted, layer, 2, 2, lut, source_rgb=np.array(img))
    assert grid.cell_color(1, 1) == (200, 0, 0)


def test_geometry_scales_with_output_scale(cache):
    compositor = Compositor(cache)
    layer = Layer(font_size=10, char_spacing=2)
    cols, rows, cell_w, cell_h, font_size = compositor.geometry(layer, 240, 240, scale=2.0)
    assert (cell_w, cell_h, font_size) == (24.0, 24.0, 20.0)
    assert (cols, rows) == (10, 10)


def test_zero_area_grid_renders_transparent(black_image, cache):
    compositor = Compositor(cache)
    adjusted = adjust_greyscale(greyscale(black_image), GlobalSettings())
    img = compositor.render_layer(adjusted, Layer(font_size=40), 20, 20)
    assert img.size == (20, 20)
    assert (np.array(img)[..., 3] == 0).all()


def test_background_fill(black_image, cache):
    img = composite_all(black_image, [], GlobalSettings(background_color='#ff0000'),
                        out_w=8, out_h=6, cache=cache)
    assert img.mode == 'RGBA'
    assert img.size == (8, 6)
    assert (np.array(img) == [255, 0, 0, 255]).all()


def test_black_image_draws_ink(cache):
    img = Image.new('RGB', (60, 60), (0, 0, 0))
    out = composite_all(img, [Layer(ramp='@ ', font_size=10)],
                        GlobalSettings(background_color='#ffffff'), cache=cache)
    pixels = np.array(out)
    assert pixels[..., :3].min() < 128
    assert (pixels[..., 3] == 255).all()


def test_zero_opacity_layer_is_a_no_op(cache):
    rng = np.random.default_rng(5)
    img = Image.fromarray(rng.integers(0, 255, size=(48, 64, 3)).astype(np.uint8))
    settings = GlobalSettings(background_color='#ffffff')
    first = Layer(ramp='@#. ', font_size=8)
    hidden = Layer(ramp='@ ', font_size=12, opacity=0.0, blend_mode=BlendMode.DIFFERENCE)

    single = composite_all(img, [first], settings, cache=cache)
    double = composite_all(img, [first, hidden], settings, cache=cache)
    assert np.array_equal(np.array(single), np.array(double))


def test_disabled_layer_is_skipped(cache):
    img = Image.new('RGB', (40, 40), (0, 0, 0))
    settings = GlobalSettings(background_color='#ffffff')
    out = composite_all(img, [Layer(ramp='@ ', enabled=False)], settings, cache=cache)
    assert (np.array(out) == 255).all()


def test_render_sequence_yields_a_frame_each(cache):
    frames = [Image.new('RGB', (20, 20), (v, v, v)) for v in (0, 128, 255)]
    rendered = list(Compositor(cache).render_sequence(frames, [Layer()], GlobalSettings(), 20, 20))
    assert len(rendered) == 3
    assert all(f.size == (20, 20) for f in rendered)


@pytest.mark.parametrize('mode', list(BlendMode))
def test_blend_stays_in_range(mode):
    rng = np.random.default_rng(11)
    cb = rng.uniform(0, 1, (5, 5, 3))
    cs = rng.uniform(0, 1, (5, 5, 3))
    out = BlendFunctions.get(mode)(cb, cs)
    assert out.shape == (5, 5, 3)
    assert np.nan_to_num(out).min() >= -1e-9


def test_normal_blend_is_source_over():
    backdrop = np.zeros((1, 1, 4))
    backdrop[..., 3] = 1.0
    source = np.array([[[1.0, 1.0, 1.0, 1.0]]])
    out = blend_onto(backdrop, source, opacity=0.5)
    assert np.allclose(out, [[[0.5, 0.5, 0.5, 1.0]]])


def test_darken_keeps_darker_color():
    backdrop = np.array([[[0.2, 0.8, 0.5, 1.0]]])
    source = np.array([[[0.6, 0.3, 0.5, 1.0]]])
    out = blend_onto(backdrop, source, 1.0, BlendMode.DARKEN)
    assert np.allclose(out, [[[0.2, 0.3, 0.5, 1.0]]])


def test_blend_onto_transparent_backdrop_shows_source():
    backdrop = np.zeros((1, 1, 4))
    source = np.array([[[0.3, 0.6, 0.9, 1.0]]])
    out = blend_onto(backdrop, source, 1.0, BlendMode.MULTIPLY)
    assert np.allclose(out, source)


def test_color_burn_edges():
    cb = np.array([1.0, 0.5, 0.5])
    cs = np.array([0.0, 0.0, 1.0])
    assert np.allclose(BlendFunctions.color_burn(cb, cs), [1.0, 0.0, 0.5])


def test_injected_cache_is_used_even_when_empty(backend):
    cache = LUTCache(backend)
    compositor = Compositor(cache)
    assert compositor.cache is cache
    assert compositor.backend is backend

    compositor.render_layer(np.zeros((12, 20)), Layer(ramp='@ ', font_size=10), 20, 12)
    assert backend.measured
    assert len(cache) == 1


def test_threshold_boundary_end_to_end(cache):
    layer = _probe_layer(ramp='@.', threshold=20)
    lut = cache.get(layer.glyphs, layer.font_family, layer.font_size)

    at_threshold = compute_layer_grid(np.full((2, 2), 235.0), layer, 1, 1, lut)
    assert at_threshold.intensity[0, 0] == 20.0
    assert list(at_threshold.cells()) == [(0, 0, '.')]

    below = compute_layer_grid(np.full((2, 2), 235.5), layer, 1, 1, lut)
    assert below.intensity[0, 0] == 0.0
    assert list(below.cells()) == []


def test_source_color_follows_glyph_not_pixel_position(cache):
    compositor = Compositor(cache)
    layer = Layer(color_mode=True)
    colors = np.array([[[255, 0, 0], [0, 0, 255]]], dtype=np.uint8)
    # A narrow cell so the glyph spills into its neighbour
    grid = LayerGrid(layer, cols=2, rows=1, cell_width=4.0, cell_height=24.0, font_size=20,
                     intensity=np.array([[255.0, 0.0]]),
                     glyphs=np.array([['@', ' ']], dtype=object), colors=colors)
    rgba = compositor.draw_grid(grid, 8, 24)

    inked = rgba[..., 3] > 0
    assert inked[:, 4:].any()
    assert np.allclose(rgba[inked][:, :3], [1.0, 0.0, 0.0])
