"""
Noise Field - Functional Core

Deterministic pseudo-random hash and smooth value noise over 2D coordinates.
Mirrors the GLSL helpers of the fragment shader so the numpy backend and the
GPU backend agree.

All functions are vectorized: coordinates are arrays of shape (..., 2) and
results have shape (...). Plain tuples work too.
"""

import numpy as np


HASH_DOT = np.array([12.9898, 78.233])
HASH_SCALE = 43758.5453123


# ============================================================================
# GLSL Built-ins
# ============================================================================

def fract(x):
    """GLSL fract: x - floor(x), always in [0, 1)"""
    return x - np.floor(x)


def mix(a, b, t):
    """GLSL mix: a * (1 - t) + b * t

    Endpoints are exact: t == 0 returns a, t == 1 returns b.
    """
    return a * (1.0 - t) + b * t


def smoothstep(edge0, edge1, x):
    """GLSL smoothstep: Hermite ramp from 0 at edge0 to 1 at edge1"""
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def length(v):
    """Euclidean length over the last axis"""
    v = np.asarray(v, dtype=np.float64)
    return np.sqrt(np.sum(v * v, axis=-1))


def vec2(x, y):
    """Stack two broadcastable arrays into (..., 2) coordinates"""
    x, y = np.broadcast_arrays(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))
    return np.stack([x, y], axis=-1)


# ============================================================================
# Hash and Value Noise
# ============================================================================

def hash2d(coord):
    """Pure function: pseudo-random value in [0, 1) for a 2D coordinate

    fract(sin(dot(coord, (12.9898, 78.233))) * 43758.5453123)

    Args:
        coord: Array of shape (..., 2)

    Returns:
        Array of shape (...) with values in [0, 1)
    """
    coord = np.asarray(coord, dtype=np.float64)
    return fract(np.sin(coord @ HASH_DOT) * HASH_SCALE)


def value_noise(coord):
    """Pure function: smooth value noise at a 2D coordinate

    Hashes the four lattice corners around each coordinate and blends them
    with a smoothstep interpolant (3t² - 2t³) on the fractional part.
    Continuous everywhere and equal to hash2d at integer lattice points.

    Args:
        coord: Array of shape (..., 2)

    Returns:
        Array of shape (...) with values in [0, 1]
    """
    coord = np.asarray(coord, dtype=np.float64)
    i = np.floor(coord)
    f = coord - i

    a = hash2d(i)
    b = hash2d(i + (1.0, 0.0))
    c = hash2d(i + (0.0, 1.0))
    d = hash2d(i + (1.0, 1.0))

    u = f * f * (3.0 - 2.0 * f)
    ux = u[..., 0]
    uy = u[..., 1]
    return mix(a, b, ux) + (c - a) * uy * (1.0 - ux) + (d - b) * ux * uy
