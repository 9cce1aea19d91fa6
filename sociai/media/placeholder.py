import io
import random
from typing import Dict, List, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from sociai.specs.common.enums import AspectRatio

SIZES: Dict[AspectRatio, Tuple[int, int]] = {
    AspectRatio.SQUARE: (1024, 1024),
    AspectRatio.VERTICAL: (768, 1365),
    AspectRatio.WIDESCREEN: (1365, 768),
}


def _text_width(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont) -> int:
    left, _, right, _ = draw.textbbox((0, 0), text, font=font)
    return right - left


def _wrap_text(text: str, draw: ImageDraw.ImageDraw, max_width: int, font: ImageFont.ImageFont) -> List[str]:
    words = text.split()
    lines: List[str] = []
    line = ""
    for w in words:
        test = (line + " " + w).strip()
        if _text_width(draw, test, font) <= max_width or not line:
            line = test
        else:
            lines.append(line)
            line = w
    if line:
        lines.append(line)
    return lines


def _pick_font(size: int) -> ImageFont.ImageFont:
    # Try a few common fonts; fallback to default
    for name in [
        "DejaVuSans.ttf",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/Library/Fonts/Arial.ttf",
    ]:
        try:
            return ImageFont.truetype(name, size=size)
        except OSError:
            pass
    return ImageFont.load_default()


def render_placeholder_image(
    caption: str,
    palette: Sequence[str],
    *,
    aspect_ratio: AspectRatio = AspectRatio.SQUARE,
    seed: int = 0,
) -> Tuple[bytes, Dict]:
    """Render an offline stand-in for a generated image.

    A diagonal gradient over the palette with the caption on top; ``seed``
    shifts the gradient so regenerations differ. Returns (png_bytes, metadata).
    """
    w, h = SIZES[aspect_ratio]
    colors = [ImageColor.getrgb(c)[:3] for c in palette] or [(140, 77, 255), (245, 245, 245)]
    if len(colors) == 1:
        colors.append((245, 245, 245))
    rng = random.Random(seed)
    offset = rng.random()

    img = Image.new("RGB", (w, h))
    draw = ImageDraw.Draw(img)
    span = w + h
    segments = len(colors) - 1
    for i in range(span):
        t = ((i / span) + offset) % 1.0
        pos = t * segments
        idx = min(int(pos), segments - 1)
        frac = pos - idx
        a, b = colors[idx], colors[idx + 1]
        rgb = tuple(round(a[k] + (b[k] - a[k]) * frac) for k in range(3))
        draw.line([(i, 0), (i - h, h)], fill=rgb, width=2)

    body_font = _pick_font(max(24, w // 32))
    margin = w // 12
    lines = _wrap_text(caption.strip(), draw, w - margin * 2, body_font)[:8]
    _, top, _, bottom = draw.textbbox((0, 0), "Ag", font=body_font)
    line_h = bottom - top
    block_h = len(lines) * (line_h + 8)
    y = (h - block_h) / 2
    if lines:
        draw.rectangle([margin // 2, y - 16, w - margin // 2, y + block_h + 8], fill=(20, 20, 20))
    for line in lines:
        lw = _text_width(draw, line, body_font)
        draw.text(((w - lw) / 2, y), line, fill=(245, 245, 245), font=body_font)
        y += line_h + 8

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue(), {"provider": "placeholder", "width": w, "height": h, "seed": seed}
