import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ascii_layers.calibration import GlyphBackend, LUTCache


class FakeBackend(GlyphBackend):
    """Fixed advance and densities; drawing still goes through Pillow."""

    DENSITIES = {'@': 0.5, '#': 0.4, '%': 0.35, '*': 0.2, '.': 0.05, ' ': 0.0}

    def __init__(self, advance=10.0, densities=None):
        super().__init__()
        self._advance = advance
        self.densities = dict(self.DENSITIES if densities is None else densities)
        self.measured = []

    def advance(self, family, font_size):
        return self._advance * font_size / 10.0

    def density(self, glyph, family, font_size):
        self.measured.append((glyph, family, font_size))
        if glyph == ' ':
            return 0.0
        return self.densities.get(glyph, 0.3)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def cache(backend):
    return LUTCache(backend)


@pytest.fixture
def white_image():
    return Image.new('RGB', (2, 2), (255, 255, 255))


@pytest.fixture
def black_image():
    return Image.new('RGB', (2, 2), (0, 0, 0))


@pytest.fixture
def gradient():
    """64x64 horizontal ramp from 0 to 255."""
    return np.tile(np.linspace(0.0, 255.0, 64), (64, 1))
