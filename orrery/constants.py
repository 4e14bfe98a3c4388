"""Shared constants for Orrery."""

APP_NAME = "orrery"
SNAPSHOT_FILENAME = "universe.json"

# --- Star colors by mass (spectral class stand-in) ---
# (minimum mass, hex color), checked top to bottom
STAR_COLOR_THRESHOLDS: list[tuple[float, str]] = [
    (600.0, "#9BB0FF"),  # O/B blue-white
    (200.0, "#CAD7FF"),  # A white
    (100.0, "#F8F7FF"),  # F yellow-white
    (50.0, "#FFF4EA"),  # G/K orange
]
COOLEST_STAR_COLOR = "#FFD2A1"  # M deep red

PLANET_COLORS = ["#4A90E2", "#E25822", "#8B7355", "#C0A080", "#A0C0E0"]
ROGUE_PLANET_COLORS = ["#5B6C8F", "#6E5A7E", "#3F5F5F", "#7A6A58"]
MOON_COLOR = "#CCCCCC"
COMET_COLOR = "#E0F4FF"
ASTEROID_COLOR = "#A89F91"
KUIPER_OBJECT_COLOR = "#B8C8D8"
LAGRANGE_COLOR = "#66FFCC"
BLACK_HOLE_COLOR = "#000000"

GROUP_COLORS = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#FFA07A",
    "#98D8C8", "#F7DC6F", "#BB8FCE", "#85C1E2",
]

RING_COLORS = ["#CCCCCC", "#D8C8A8", "#C2B280", "#E6DCC8", "#A9A9B8"]
COMET_TAIL_COLORS = ["#9BD8FF", "#BFE9FF", "#FFFFFF", "#C8F0E0"]

# --- Particle field palettes (base, highlight) ---
MAIN_BELT_COLORS = ("#8B7D6B", "#BFAF95")
KUIPER_BELT_COLORS = ("#A9C6E8", "#E6F2FF")
DISK_COLORS = ("#D9A066", "#FFE3B3")

# --- Nebula palettes ---
WARM_NEBULA_COLORS = ["#FF6B6B", "#FF9F43", "#F7B267", "#E84A5F", "#FF7EB9"]
COOL_NEBULA_COLORS = ["#4ECDC4", "#45B7D1", "#6C5CE7", "#74B9FF", "#A29BFE"]

# --- Black holes ---
STELLAR_BLACK_HOLE_LIMIT = 50.0  # Below: stellar
INTERMEDIATE_BLACK_HOLE_LIMIT = 10_000.0  # Below: intermediate, else supermassive
