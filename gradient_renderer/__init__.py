"""
Gradient Renderer Package

Animated procedural gradients with still and video export, using the
functional core, imperative shell pattern.

Modules:
- noise, patterns, core: Pure per-pixel pipeline (numpy)
- params: Immutable parameter snapshots and their store
- shell: ModernGL fragment-shader renderer
- render_loop: Play/pause tick scheduling on asyncio
- exporter, encoder, transcoder: PNG and MP4 export
"""

from .noise import (
    hash2d,
    value_noise,
)

from .patterns import (
    PATTERN_NAMES,
    evaluate_pattern,
    pattern_name,
)

from .core import (
    pixel_positions,
    distort,
    blend_color_stops,
    composite,
    shade,
    to_rgba8,
    NumpyRenderer,
)

from .params import (
    RenderParameters,
    ParameterStore,
    parse_hex_color,
)

from .errors import (
    GradientRendererError,
    InvalidParameter,
    RenderingUnavailable,
    ExportFailure,
)

from .config import RenderConfig

from .shell import (
    ModernGLRenderer,
    create_renderer,
)

from .render_loop import (
    LoopState,
    RenderLoop,
)

from .transcoder import (
    Transcoder,
    FFmpegTranscoder,
)

from .exporter import (
    ExportArtifact,
    ExportResult,
    FrameExporter,
)

__all__ = [
    # Core
    'hash2d',
    'value_noise',
    'PATTERN_NAMES',
    'evaluate_pattern',
    'pattern_name',
    'pixel_positions',
    'distort',
    'blend_color_stops',
    'composite',
    'shade',
    'to_rgba8',
    'NumpyRenderer',

    # Parameters and errors
    'RenderParameters',
    'ParameterStore',
    'parse_hex_color',
    'RenderConfig',
    'GradientRendererError',
    'InvalidParameter',
    'RenderingUnavailable',
    'ExportFailure',

    # Shell
    'ModernGLRenderer',
    'create_renderer',
    'LoopState',
    'RenderLoop',
    'Transcoder',
    'FFmpegTranscoder',
    'ExportArtifact',
    'ExportResult',
    'FrameExporter',
]
