import colorsys
from typing import Iterable, List, Optional, Tuple

from PIL import ImageColor

LIGHT_NEUTRAL = "#F5F5F5"
DARK_NEUTRAL = "#1A1A1A"
MIN_PALETTE = 3
MAX_PALETTE = 5


def normalize_hex(value: Optional[str]) -> Optional[str]:
    """Return ``#RRGGBB`` for any colour Pillow understands, else None."""
    if not value or not isinstance(value, str):
        return None
    try:
        rgb = ImageColor.getrgb(value.strip())
    except ValueError:
        return None
    r, g, b = rgb[:3]
    return f"#{r:02X}{g:02X}{b:02X}"


def _hsv(hex_color: str) -> Tuple[float, float, float]:
    r, g, b = ImageColor.getrgb(hex_color)[:3]
    return colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)


def shade(hex_color: str, amount: float) -> str:
    """Lighten (amount > 0) or darken (amount < 0) a colour."""
    h, s, v = _hsv(hex_color)
    if amount >= 0:
        s = s * (1 - amount)
        v = v + (1 - v) * amount
    else:
        v = v * (1 + amount)
    r, g, b = colorsys.hsv_to_rgb(h, s, v)
    return f"#{round(r * 255):02X}{round(g * 255):02X}{round(b * 255):02X}"


def is_single_hue(palette: Iterable[str], tolerance: float = 0.06) -> bool:
    hues = []
    for color in palette:
        h, s, v = _hsv(color)
        if s <= 0.15 or v <= 0.15:
            # a neutral already breaks the monochrome
            return False
        hues.append(h)
    if len(hues) < 2:
        return False
    # smallest arc covering every hue on the colour wheel
    hues.sort()
    gaps = [b - a for a, b in zip(hues, hues[1:])]
    gaps.append(1 - hues[-1] + hues[0])
    return 1 - max(gaps) < tolerance


def build_palette(
    candidates: Iterable[str],
    primary: str,
    secondary: Optional[str] = None,
) -> List[str]:
    """Derive a 3-5 colour palette from model suggestions, padded with brand colours."""
    palette: List[str] = []

    def _add(color: Optional[str]) -> None:
        norm = normalize_hex(color)
        if norm and norm not in palette and len(palette) < MAX_PALETTE:
            palette.append(norm)

    for color in candidates:
        _add(color)

    base = normalize_hex(primary) or "#8C4DFF"
    if len(palette) < MIN_PALETTE:
        for color in (base, secondary, shade(base, 0.4), shade(base, -0.45), LIGHT_NEUTRAL, DARK_NEUTRAL):
            if len(palette) >= MIN_PALETTE:
                break
            _add(color)

    if is_single_hue(palette):
        neutral = DARK_NEUTRAL if _hsv(palette[0])[2] > 0.5 else LIGHT_NEUTRAL
        if len(palette) >= MAX_PALETTE:
            palette[-1] = neutral
        else:
            palette.append(neutral)
    return palette
