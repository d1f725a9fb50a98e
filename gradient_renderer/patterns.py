"""
Pattern Library - Functional Core

Six procedural pattern functions. Each takes warped positions of shape
(..., 2) and the scaled time t = time * 0.2 and returns a pattern field.
Fields are not bounded to [0, 1]; the compositor copes with any value.

Concentric rings returns a (..., 3) vector field, every other pattern a
scalar field of shape (...).
"""

from typing import Callable, Dict

import numpy as np

from .noise import fract, length, smoothstep, value_noise, vec2


TIME_SCALE = 0.2

RADIAL_NOISE = 0
SPIRAL = 1
GRID = 2
WAVES = 3
CONCENTRIC_RINGS = 4
TURBULENCE = 5

PATTERN_NAMES: Dict[int, str] = {
    RADIAL_NOISE: "Radial Noise",
    SPIRAL: "Spiral",
    GRID: "Grid",
    WAVES: "Waves",
    CONCENTRIC_RINGS: "Concentric Rings",
    TURBULENCE: "Turbulence",
}


# ============================================================================
# Patterns
# ============================================================================

def radial_noise(pos: np.ndarray, t: float, noise_amount: float) -> np.ndarray:
    """Distance from center, roughened by noise scaled with noise_amount"""
    return length(pos) + value_noise(pos * 3.0 + t) * noise_amount


def spiral(pos: np.ndarray, t: float) -> np.ndarray:
    """Five-armed spiral whose arms grow brighter away from the center"""
    angle = np.arctan2(pos[..., 1], pos[..., 0])
    radius = length(pos)
    return (np.sin(angle * 5.0 + t) * 0.5 + 0.5) * radius


def grid(pos: np.ndarray, t: float) -> np.ndarray:
    # 5x5 cells per unit; ~0 inside the dot, 1 at the cell corners
    cell = fract(pos * 5.0)
    return smoothstep(0.4, 0.5, length(cell - 0.5))


def waves(pos: np.ndarray, t: float) -> np.ndarray:
    return np.sin(pos[..., 0] * 10.0 + t) * np.cos(pos[..., 1] * 10.0 + t) * 0.5 + 0.5


def concentric_rings(pos: np.ndarray, t: float) -> np.ndarray:
    """Rings at frequencies 10, 20 and 30, one per channel, rescaled to [0, 1]

    Returns:
        Array of shape (..., 3)
    """
    d = length(pos)
    rings = np.stack([np.sin(d * 10.0 - t), np.sin(d * 20.0 - t), np.sin(d * 30.0 - t)], axis=-1)
    return rings * 0.5 + 0.5


def turbulence(pos: np.ndarray, t: float) -> np.ndarray:
    """Two-stage domain warp: noise of pos displaced by noise of noise

    q = (noise(p + t), noise(p + 1))
    r = (noise(p + q + (1.7, 9.2) + 0.15t), noise(p + q + (8.3, 2.8) + 0.126t))
    result = noise(p + r)
    """
    q = vec2(value_noise(pos + t), value_noise(pos + 1.0))
    r = vec2(
        value_noise(pos + 1.0 * q + np.array([1.7, 9.2]) + 0.15 * t),
        value_noise(pos + 1.0 * q + np.array([8.3, 2.8]) + 0.126 * t),
    )
    return value_noise(pos + 1.0 * r)


# ============================================================================
# Dispatch
# ============================================================================

_PATTERNS: Dict[int, Callable[[np.ndarray, float], np.ndarray]] = {
    SPIRAL: spiral,
    GRID: grid,
    WAVES: waves,
    CONCENTRIC_RINGS: concentric_rings,
}


def pattern_name(pattern_id: int) -> str:
    """Display name for a pattern id; unknown ids render as turbulence"""
    return PATTERN_NAMES.get(pattern_id, PATTERN_NAMES[TURBULENCE])


def evaluate_pattern(pattern_id: int, pos: np.ndarray, t: float, noise_amount: float = 0.0) -> np.ndarray:
    """Pure function: evaluate the pattern selected by pattern_id

    Ids 0-4 select their pattern. Every other id, not only 5, falls
    through to turbulence.

    Args:
        pattern_id: Pattern selector
        pos: Warped positions, shape (..., 2)
        t: Scaled time (elapsed seconds * 0.2)
        noise_amount: Only read by radial noise

    Returns:
        Pattern field, shape (...) or (..., 3) for concentric rings
    """
    pos = np.asarray(pos, dtype=np.float64)
    if pattern_id == RADIAL_NOISE:
        return radial_noise(pos, t, noise_amount)
    pattern = _PATTERNS.get(pattern_id, turbulence)
    return pattern(pos, t)


def scalar_field(field: np.ndarray, pos_shape) -> np.ndarray:
    """Reduce a pattern field to the scalar that drives the compositor

    Vector fields contribute their first channel only.

    Args:
        field: Output of evaluate_pattern
        pos_shape: Shape of the positions the field was evaluated at
    """
    field = np.asarray(field, dtype=np.float64)
    if field.shape != tuple(pos_shape[:-1]):
        return field[..., 0]
    return field
