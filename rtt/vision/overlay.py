from __future__ import annotations

import io
from typing import List, Tuple

from PIL import ImageDraw

from .preprocess import decode_image
from .schema import EncodedImage, PriceLevel

_LEVEL_COLORS = {
    "take profit": (22, 163, 74),
    "stop loss": (220, 38, 38),
    "entry": (37, 99, 235),
}
_DEFAULT_COLOR = (234, 179, 8)


def _color_for(label: str) -> Tuple[int, int, int]:
    return _LEVEL_COLORS.get(label.strip().lower(), _DEFAULT_COLOR)


def draw_price_levels(image: EncodedImage, levels: List[PriceLevel]) -> bytes:
    """Draw a dashed horizontal line per level across the chart; returns PNG bytes."""
    img = decode_image(image)
    w, h = img.size
    draw = ImageDraw.Draw(img)

    dash, gap = 10, 6
    line_w = max(1, h // 300)
    for lv in levels:
        y = min(h - 1, max(0, round(lv.y * (h - 1))))
        color = _color_for(lv.label)

        x = 0
        while x < w:
            draw.line([(x, y), (min(x + dash, w - 1), y)], fill=color, width=line_w)
            x += dash + gap

        text = f"{lv.label} {lv.price}" if lv.price else lv.label
        left, top, right, bottom = draw.textbbox((0, 0), text)
        tw, th = right - left, bottom - top
        ty = y - th - 4 if y - th - 4 >= 0 else y + 4
        draw.rectangle([(4, ty - 2), (4 + tw + 6, ty + th + 2)], fill=(15, 23, 42))
        draw.text((7, ty - top), text, fill=color)

    out = io.BytesIO()
    img.save(out, format="PNG", optimize=True)
    return out.getvalue()
