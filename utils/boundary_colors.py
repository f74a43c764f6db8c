"""Boundary color palettes and map paint constants"""
from typing import Dict, List, Tuple

# Base fill colors per boundary type
BOUNDARY_COLORS: Dict[str, List[str]] = {
    "state": ["#6C8EBF"],  # single blue for states
    "county": [
        "#D79B00",
        "#E69900",
        "#FFA500",
        "#FF9900",
        "#ED7D31",
        "#F4B183",
        "#DFA67B",
        "#C65911",
        "#B45F06",
        "#A47B3D",
    ],
    "city": [
        "#82B366",
        "#97D077",
        "#74A057",
        "#9AC483",
        "#69BE7B",
        "#8BBD5C",
        "#B1E0A1",
        "#57A857",
        "#60A15A",
        "#76B947",
    ],
}

# Hover colors, index-aligned with BOUNDARY_COLORS
BOUNDARY_HOVER_COLORS: Dict[str, List[str]] = {
    "state": ["#8CA9D8"],
    "county": [
        "#E8B974",
        "#F7CC8F",
        "#FFD180",
        "#FFCC80",
        "#F8BCA0",
        "#FAD5B6",
        "#EFCFB1",
        "#E5AD8F",
        "#DCB997",
        "#CDBCA1",
    ],
    "city": [
        "#A6D895",
        "#C2E6AD",
        "#A6CFA0",
        "#C6DBC1",
        "#A6DCB7",
        "#B6D699",
        "#D2EFC9",
        "#9DD09D",
        "#9DC096",
        "#ADDA8F",
    ],
}

# Layer paint
BOUNDARY_FILL_OPACITY = 0.7
BOUNDARY_LINE_COLOR = "rgba(0, 0, 0, 0.3)"
BOUNDARY_HOVER_LINE_COLOR = "#000000"
SELECTED_LINE_COLOR = "#000000"
SELECTED_MARKER_COLOR = "#FF0000"
NEARBY_CITY_COLOR = "#3887be"
POLYGON_RESULT_COLOR = "#6b35e6"
DRAW_INACTIVE_COLOR = "#3bb2d0"
DRAW_ACTIVE_COLOR = "#fbb03b"


def colors_at(boundary_type: str, index: int) -> Tuple[str, str]:
    """Return (fill, hover) for the palette slot `index` of a boundary type.

    The index wraps around the palette, so callers can pass a running count.
    """
    base = BOUNDARY_COLORS[boundary_type]
    hover = BOUNDARY_HOVER_COLORS[boundary_type]
    slot = index % len(base)
    return base[slot], hover[slot]
