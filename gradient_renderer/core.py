"""
Gradient Renderer - Functional Core

Pure functions for the per-pixel pipeline:
    distortion -> pattern -> color compositing -> RGBA8 raster

Every function is vectorized over pixel positions, so a full frame is a
single evaluation over a (height, width, 2) position grid. No side effects,
no GPU operations.

Follows functional core, imperative shell pattern:
- This module: pure transformations (NumpyRenderer is the CPU reference)
- shell.py: the same pipeline as a ModernGL fragment shader
"""

from typing import Sequence, Tuple

import numpy as np

from .config import RASTER_SIZE
from .noise import hash2d, mix, smoothstep, value_noise
from .params import RenderParameters
from .patterns import TIME_SCALE, evaluate_pattern, scalar_field


GRAY = np.array([0.5, 0.5, 0.5])
GRAIN_STRENGTH = 0.15
FLATTEN_STRENGTH = 0.5
MIX_EDGE = 0.1

RGB = Tuple[float, float, float]


# ============================================================================
# Coordinates
# ============================================================================

def pixel_positions(width: int = RASTER_SIZE, height: int = RASTER_SIZE) -> np.ndarray:
    """Normalized [-1, 1] position of every pixel center

    Row 0 is the top of the image, so y decreases with the row index
    (OpenGL fragment coordinates have their origin at the bottom-left).

    Returns:
        Array of shape (height, width, 2)
    """
    xs = (np.arange(width) + 0.5) / width * 2.0 - 1.0
    ys = ((height - 1 - np.arange(height)) + 0.5) / height * 2.0 - 1.0
    grid_x, grid_y = np.meshgrid(xs, ys)
    return np.stack([grid_x, grid_y], axis=-1)


# ============================================================================
# Distortion
# ============================================================================

def distort(
    pos: np.ndarray,
    distortion_x: float,
    distortion_y: float,
    distortion_scale: float
) -> np.ndarray:
    """Pure function: warp positions by value noise

    Both axes are shifted by the same noise sample taken at the unwarped
    position, so the X and Y warps are correlated.

    Args:
        pos: Positions, shape (..., 2)
        distortion_x, distortion_y: Warp strength per axis
        distortion_scale: Frequency of the warp noise

    Returns:
        Warped positions, same shape as pos
    """
    pos = np.asarray(pos, dtype=np.float64)
    n = value_noise(pos * distortion_scale)
    warped = pos.copy()
    warped[..., 0] = pos[..., 0] + n * distortion_x
    warped[..., 1] = pos[..., 1] + n * distortion_y
    return warped


# ============================================================================
# Color Compositing
# ============================================================================

def blend_color_stops(stops: Sequence[RGB], field: np.ndarray) -> np.ndarray:
    """Pure function: map a scalar field onto an ordered list of color stops

    Stop i takes over around field value i / (count - 1), with a smoothstep
    transition 0.1 wide on either side. The gradient is keyed by the field
    value, not by position.

    Args:
        stops: At least two RGB colors
        field: Scalar field, shape (...)

    Returns:
        Colors, shape (..., 3)
    """
    stops = np.asarray(stops, dtype=np.float64)
    field = np.asarray(field, dtype=np.float64)
    count = len(stops)

    color = np.broadcast_to(stops[0], field.shape + (3,)).copy()
    for i in range(1, count):
        mix_factor = i / (count - 1)
        weight = smoothstep(mix_factor - MIX_EDGE, mix_factor + MIX_EDGE, field)
        color = mix(color, stops[i], weight[..., np.newaxis])
    return color


def apply_grain(color: np.ndarray, pos: np.ndarray, t: float, noise_amount: float) -> np.ndarray:
    """Add hash grain to every channel; the result is not clamped"""
    grain = hash2d(np.asarray(pos, dtype=np.float64) + t) * noise_amount * GRAIN_STRENGTH
    return color + grain[..., np.newaxis]


def apply_flatten(color: np.ndarray, blur_amount: float) -> np.ndarray:
    """Pull every pixel toward mid gray by blur_amount * 0.5

    There is no spatial filtering: blur_amount = 1 moves colors exactly
    halfway to gray.
    """
    return mix(color, GRAY, blur_amount * FLATTEN_STRENGTH)


def composite(
    stops: Sequence[RGB],
    field: np.ndarray,
    pos: np.ndarray,
    t: float,
    noise_amount: float,
    blur_amount: float
) -> np.ndarray:
    """Pure function: color stops -> grain -> flatten

    Args:
        stops: Active color stops
        field: Scalar pattern field, shape (...)
        pos: Warped positions the field was evaluated at, shape (..., 2)
        t: Scaled time
        noise_amount: Grain strength
        blur_amount: Flatten strength

    Returns:
        Float colors, shape (..., 3), not clamped
    """
    color = blend_color_stops(stops, field)
    color = apply_grain(color, pos, t, noise_amount)
    return apply_flatten(color, blur_amount)


# ============================================================================
# Full Pipeline
# ============================================================================

def shade(params: RenderParameters, pos: np.ndarray, time: float) -> np.ndarray:
    """Pure function: evaluate the whole pipeline at the given positions

    Args:
        params: Parameter snapshot for this frame
        pos: Unwarped positions, shape (..., 2)
        time: Elapsed seconds

    Returns:
        Float colors, shape (..., 3)
    """
    pos = np.asarray(pos, dtype=np.float64)
    warped = distort(pos, params.distortion_x, params.distortion_y, params.distortion_scale)
    t = time * TIME_SCALE
    field = evaluate_pattern(params.pattern_id, warped, t, params.noise_amount)
    field = scalar_field(field, warped.shape)
    return composite(params.color_stops, field, warped, t, params.noise_amount, params.blur_amount)


def to_rgba8(color: np.ndarray) -> np.ndarray:
    """Convert float colors to opaque RGBA8 like a fixed-point framebuffer

    Channels are clamped to [0, 1] and rounded to the nearest 8-bit value.

    Args:
        color: Float colors, shape (..., 3)

    Returns:
        uint8 array, shape (..., 4), alpha 255
    """
    rgb = np.floor(np.clip(color, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    alpha = np.full(rgb.shape[:-1] + (1,), 255, dtype=np.uint8)
    return np.concatenate([rgb, alpha], axis=-1)


def empty_raster(width: int = RASTER_SIZE, height: int = RASTER_SIZE) -> np.ndarray:
    """Opaque black raster shown before the first tick"""
    raster = np.zeros((height, width, 4), dtype=np.uint8)
    raster[..., 3] = 255
    return raster


class NumpyRenderer:
    """CPU reference renderer

    Keeps the pixel grid for the lifetime of the session; only the parameter
    snapshot and time change between frames.
    """

    name = "numpy"

    def __init__(self, width: int = RASTER_SIZE, height: int = RASTER_SIZE):
        self.width = width
        self.height = height
        self.positions = pixel_positions(width, height)

    def render(self, params: RenderParameters, time: float) -> np.ndarray:
        """Render one frame

        Returns:
            RGBA8 raster, shape (height, width, 4)
        """
        return to_rgba8(shade(params, self.positions, time))

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
