"""
Tests for drawing model-reported price levels over the chart.

Run with: pytest tests/test_overlay.py -v
"""

import asyncio
import io

from PIL import Image

from conftest import make_png
from rtt.vision.overlay import draw_price_levels
from rtt.vision.preprocess import encode_image
from rtt.vision.schema import PriceLevel


def _encoded(size=(400, 200)):
    return asyncio.run(encode_image(make_png(size), "image/png"))


class TestDrawPriceLevels:

    def test_returns_png_of_same_size(self):
        out = draw_price_levels(_encoded(), [PriceLevel(label="Entry", price="100", y=0.5)])
        img = Image.open(io.BytesIO(out))
        assert img.format == "PNG"
        assert img.size == (400, 200)

    def test_lines_use_level_colors(self):
        levels = [
            PriceLevel(label="Take Profit", price="105.50", y=0.2),
            PriceLevel(label="Stop Loss", price="98.20", y=0.8),
        ]
        img = Image.open(io.BytesIO(draw_price_levels(_encoded(), levels))).convert("RGB")

        assert img.getpixel((200, 40)) == (22, 163, 74)
        assert img.getpixel((200, 159)) == (220, 38, 38)
        # away from any line the chart is untouched
        assert img.getpixel((200, 100)) == (255, 255, 255)

    def test_unknown_label_gets_default_color(self):
        out = draw_price_levels(_encoded(), [PriceLevel(label="Resistance", price=None, y=1.0)])
        img = Image.open(io.BytesIO(out)).convert("RGB")
        assert img.getpixel((200, 199)) == (234, 179, 8)
