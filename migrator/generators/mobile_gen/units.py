"""CSS value conversion for React Native style sheets, one function per unit family."""
import logging
import re
from typing import Any, Dict, Union

from migrator.generators.rewrite_rules import css_declarations, css_property_to_camel

log = logging.getLogger(__name__)

BASE_FONT_SIZE = 16
# CSS pixels per point
PX_PER_PT = 4 / 3

Number = Union[int, float]

FONT_SIZE_KEYWORDS = {
    "xx-small": 9,
    "x-small": 10,
    "small": 13,
    "medium": 16,
    "large": 18,
    "x-large": 24,
    "xx-large": 32,
}

LENGTH = re.compile(r"^(-?\d*\.?\d+)(px|em|rem|pt)?$")
RGB = re.compile(r"^rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)$")

COLOR_PROPERTIES = {"color", "background-color", "border-color", "outline-color"}
LENGTH_PROPERTIES = {
    "width", "height", "min-width", "min-height", "max-width", "max-height",
    "margin", "margin-top", "margin-right", "margin-bottom", "margin-left",
    "padding", "padding-top", "padding-right", "padding-bottom", "padding-left",
    "top", "right", "bottom", "left", "border-radius", "border-width",
    "line-height", "letter-spacing", "gap",
}
# No React Native equivalent
DROPPED_PROPERTIES = {"cursor", "transition", "box-shadow", "float", "list-style", "box-sizing", "outline"}


def _number(text: str) -> Number:
    value = float(text)
    return int(value) if value.is_integer() else value


def convert_pixel_length(value: str) -> Union[Number, str]:
    """'12px' -> 12, '1.5em' -> 24, '12pt' -> 16; percentages and keywords stay strings."""
    raw = value.strip().lower()
    match = LENGTH.match(raw)
    if not match:
        return value.strip()
    number, unit = match.groups()
    if unit in ("em", "rem"):
        return _number(str(float(number) * BASE_FONT_SIZE))
    if unit == "pt":
        return _number(str(round(float(number) * PX_PER_PT, 2)))
    return _number(number)


def convert_relative_font(value: str) -> Number:
    """Font sizes in points; em/rem scale the 16px base, keywords use browser defaults."""
    raw = value.strip().lower()
    if raw in FONT_SIZE_KEYWORDS:
        return FONT_SIZE_KEYWORDS[raw]
    if raw.endswith("%"):
        try:
            return _number(str(BASE_FONT_SIZE * float(raw[:-1]) / 100))
        except ValueError:
            return BASE_FONT_SIZE
    converted = convert_pixel_length(raw)
    return converted if isinstance(converted, (int, float)) else BASE_FONT_SIZE


def convert_color(value: str) -> str:
    """rgb(r, g, b) -> '#rrggbb'; hex, rgba and named colours pass through."""
    raw = value.strip()
    match = RGB.match(raw.lower())
    if match:
        channels = [min(int(c), 255) for c in match.groups()]
        return "#" + "".join(f"{c:02x}" for c in channels)
    return raw


def convert_border(value: str) -> Dict[str, Any]:
    """'1px solid #ccc' -> borderWidth, borderStyle and borderColor."""
    result: Dict[str, Any] = {}
    for part in value.split():
        lowered = part.lower()
        if lowered in ("solid", "dashed", "dotted"):
            result["borderStyle"] = lowered
        elif LENGTH.match(lowered):
            result["borderWidth"] = convert_pixel_length(lowered)
        elif lowered not in ("none", "hidden", "double", "groove", "ridge", "inset", "outset"):
            result["borderColor"] = convert_color(part)
    return result


def css_to_native(css: str) -> Dict[str, Any]:
    """Convert a declaration block into a React Native style object."""
    style: Dict[str, Any] = {}
    for prop, value in css_declarations(css):
        if prop in DROPPED_PROPERTIES:
            log.debug(f"Dropping unsupported style property '{prop}'")
            continue
        if prop == "border":
            style.update(convert_border(value))
        elif prop == "background":
            style["backgroundColor"] = convert_color(value.split()[0])
        elif prop == "font-size":
            style["fontSize"] = convert_relative_font(value)
        elif prop == "display":
            style["display"] = "none" if value.strip().lower() == "none" else "flex"
        elif prop in COLOR_PROPERTIES:
            style[css_property_to_camel(prop)] = convert_color(value)
        elif prop in LENGTH_PROPERTIES:
            style[css_property_to_camel(prop)] = convert_pixel_length(value)
        else:
            style[css_property_to_camel(prop)] = value
    return style
