"""
Render Parameters - Shared Contract

Defines the parameter snapshot read by the render loop and the store the
UI side writes to.

Snapshots are immutable: every update builds and validates a complete new
RenderParameters and swaps it in wholesale, so a reader never sees a mix of
old and new fields. Invalid input raises InvalidParameter at the setter and
never reaches the renderer.
"""

import logging
import math
import re
import threading
from dataclasses import dataclass, field, fields, replace
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .config import MAX_COLOR_STOPS
from .errors import InvalidParameter

logger = logging.getLogger(__name__)

RGB = Tuple[float, float, float]
ColorValue = Union[str, Sequence[float]]

HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{6})$")

MIN_COLOR_COUNT = 2

# Field name -> (low, high) inclusive domain
SCALAR_DOMAINS = {
    'noise_amount': (0.0, 1.0),
    'blur_amount': (0.0, 1.0),
    'distortion_x': (0.0, 1.0),
    'distortion_y': (0.0, 1.0),
    'distortion_scale': (1.0, 20.0),
}


# ============================================================================
# Color Conversion
# ============================================================================

def parse_hex_color(value: str) -> RGB:
    """Parse '#rrggbb' into RGB floats in [0, 1]

    Raises:
        InvalidParameter: If the string is not a six-digit hex color
    """
    match = HEX_COLOR.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InvalidParameter('color', value, "expected '#rrggbb'")
    digits = match.group(1)
    return tuple(int(digits[i:i + 2], 16) / 255.0 for i in (0, 2, 4))


def to_hex(color: RGB) -> str:
    """Format RGB floats as '#rrggbb'"""
    return '#' + ''.join(f"{int(round(c * 255)):02x}" for c in color)


def normalize_color(value: ColorValue) -> RGB:
    """Accept a hex string or an RGB float triple and return RGB floats

    Raises:
        InvalidParameter: For anything that is not a valid color
    """
    if isinstance(value, str):
        return parse_hex_color(value)

    try:
        channels = tuple(float(c) for c in value)
    except (TypeError, ValueError):
        raise InvalidParameter('color', value, "expected '#rrggbb' or an RGB triple")

    if len(channels) != 3:
        raise InvalidParameter('color', value, "expected three channels")
    if not all(math.isfinite(c) and 0.0 <= c <= 1.0 for c in channels):
        raise InvalidParameter('color', value, "channels must be in [0, 1]")
    return channels


def random_colors(rng: Optional[np.random.Generator] = None, count: int = MAX_COLOR_STOPS) -> Tuple[RGB, ...]:
    """Independent random colors, one uniformly drawn 24-bit value each"""
    rng = rng if rng is not None else np.random.default_rng()
    values = rng.integers(0, 0x1000000, size=count)
    return tuple(parse_hex_color(f"#{int(v):06x}") for v in values)


# ============================================================================
# Validation
# ============================================================================

def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _check_scalar(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise InvalidParameter(name, value, "expected a number")
    value = float(value)
    low, high = SCALAR_DOMAINS[name]
    if not math.isfinite(value) or not low <= value <= high:
        raise InvalidParameter(name, value, f"must be within [{low}, {high}]")
    return value


# ============================================================================
# Snapshot
# ============================================================================

@dataclass(frozen=True)
class RenderParameters:
    """One consistent set of render inputs

    Attributes:
        pattern_id: Pattern selector; ids outside 0-4 render turbulence
        noise_amount: Grain strength (also roughens radial noise)
        blur_amount: Flatten-toward-gray strength
        distortion_x, distortion_y: Warp strength per axis
        distortion_scale: Warp noise frequency
        color_count: Number of active color stops (2-10)
        colors: All ten color slots as RGB floats
    """
    pattern_id: int = 0
    noise_amount: float = 0.5
    blur_amount: float = 0.2
    distortion_x: float = 0.3
    distortion_y: float = 0.3
    distortion_scale: float = 5.0
    color_count: int = 3
    colors: Tuple[RGB, ...] = field(default_factory=random_colors)

    def __post_init__(self):
        """Validate every field and normalize colors to ten RGB triples"""
        if not _is_int(self.pattern_id):
            raise InvalidParameter('pattern_id', self.pattern_id, "expected an integer")
        object.__setattr__(self, 'pattern_id', int(self.pattern_id))

        for name in SCALAR_DOMAINS:
            object.__setattr__(self, name, _check_scalar(name, getattr(self, name)))

        if not _is_int(self.color_count):
            raise InvalidParameter('color_count', self.color_count, "expected an integer")
        if not MIN_COLOR_COUNT <= self.color_count <= MAX_COLOR_STOPS:
            raise InvalidParameter(
                'color_count', self.color_count,
                f"must be within [{MIN_COLOR_COUNT}, {MAX_COLOR_STOPS}]"
            )
        object.__setattr__(self, 'color_count', int(self.color_count))

        if isinstance(self.colors, str):
            raise InvalidParameter('colors', self.colors, "expected a sequence of colors")
        colors = tuple(normalize_color(c) for c in self.colors)
        if len(colors) != MAX_COLOR_STOPS:
            raise InvalidParameter('colors', len(colors), f"expected {MAX_COLOR_STOPS} color slots")
        object.__setattr__(self, 'colors', colors)

    @property
    def color_stops(self) -> Tuple[RGB, ...]:
        """The first color_count slots, in gradient order"""
        return self.colors[:self.color_count]

    def hex_colors(self) -> Tuple[str, ...]:
        return tuple(to_hex(c) for c in self.colors)


FIELD_NAMES = frozenset(f.name for f in fields(RenderParameters))


# ============================================================================
# Store
# ============================================================================

class ParameterStore:
    """Process-wide holder of the current RenderParameters snapshot

    Writers are serialized by a lock; readers just take `current`, which is
    always a complete, validated snapshot.
    """

    def __init__(
        self,
        initial: Optional[RenderParameters] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self._rng = rng if rng is not None else np.random.default_rng()
        self._lock = threading.Lock()
        self._current = initial if initial is not None else RenderParameters(colors=random_colors(self._rng))

    @property
    def current(self) -> RenderParameters:
        return self._current

    def update(self, **changes) -> RenderParameters:
        """Replace any subset of fields and swap in the new snapshot

        Raises:
            InvalidParameter: For unknown fields or invalid values; the
                current snapshot is unchanged
        """
        unknown = set(changes) - FIELD_NAMES
        if unknown:
            name = sorted(unknown)[0]
            raise InvalidParameter(name, changes[name], "unknown parameter")

        with self._lock:
            snapshot = replace(self._current, **changes)
            self._current = snapshot
        logger.debug(f"Parameters updated: {sorted(changes)}")
        return snapshot

    def set_color(self, index: int, color: ColorValue) -> RenderParameters:
        """Replace one of the ten color slots"""
        if not _is_int(index) or not 0 <= index < MAX_COLOR_STOPS:
            raise InvalidParameter('color_index', index, f"must be within [0, {MAX_COLOR_STOPS - 1}]")
        rgb = normalize_color(color)
        with self._lock:
            colors = list(self._current.colors)
            colors[index] = rgb
            snapshot = replace(self._current, colors=tuple(colors))
            self._current = snapshot
        return snapshot

    def set_colors(self, stops: Sequence[ColorValue]) -> RenderParameters:
        """Use stops as the active gradient, setting color_count to match

        Slots past len(stops) keep their current colors.
        """
        if isinstance(stops, str):
            raise InvalidParameter('colors', stops, "expected a sequence of colors")
        stops = [normalize_color(c) for c in stops]
        if not MIN_COLOR_COUNT <= len(stops) <= MAX_COLOR_STOPS:
            raise InvalidParameter(
                'color_count', len(stops),
                f"must be within [{MIN_COLOR_COUNT}, {MAX_COLOR_STOPS}]"
            )
        with self._lock:
            colors = tuple(stops) + self._current.colors[len(stops):]
            snapshot = replace(self._current, colors=colors, color_count=len(stops))
            self._current = snapshot
        return snapshot

    def regenerate_colors(self) -> RenderParameters:
        """Fill all ten slots with new random colors; nothing else changes"""
        with self._lock:
            snapshot = replace(self._current, colors=random_colors(self._rng))
            self._current = snapshot
        logger.debug(f"Regenerated colors: {snapshot.hex_colors()[:snapshot.color_count]}")
        return snapshot
