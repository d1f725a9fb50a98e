"""
Gradient Renderer - Imperative Shell

Handles all GPU operations and side effects.
Runs the same pipeline as core.py, but as a fragment shader drawn over a
fullscreen quad in a standalone ModernGL context.

Follows functional core, imperative shell pattern:
- core.py: Pure transformations (CPU reference renderer)
- This module: GPU operations (side effects, resources, I/O)
"""

import logging
from typing import Optional

import moderngl
import numpy as np

from .config import MAX_COLOR_STOPS, RASTER_SIZE, RenderConfig
from .core import NumpyRenderer
from .errors import RenderingUnavailable
from .params import RenderParameters
from .timing import RenderTimings, time_operation

logger = logging.getLogger(__name__)


# ============================================================================
# Shader Source Code
# ============================================================================

FULLSCREEN_VERTEX_SHADER = """
#version 330

in vec2 in_position;

void main() {
    gl_Position = vec4(in_position, 0.0, 1.0);
}
"""

GRADIENT_FRAGMENT_SHADER = """
#version 330

uniform float u_time;
uniform vec2 u_resolution;
uniform float u_noise_amount;
uniform float u_blur_amount;
uniform float u_distortion_x;
uniform float u_distortion_y;
uniform float u_distortion_scale;
uniform vec3 u_colors[10];
uniform int u_color_count;
uniform int u_pattern;

out vec4 f_color;

float random(vec2 st) {
    return fract(sin(dot(st.xy, vec2(12.9898, 78.233))) * 43758.5453123);
}

float noise(vec2 st) {
    vec2 i = floor(st);
    vec2 f = fract(st);
    float a = random(i);
    float b = random(i + vec2(1.0, 0.0));
    float c = random(i + vec2(0.0, 1.0));
    float d = random(i + vec2(1.0, 1.0));
    vec2 u = f * f * (3.0 - 2.0 * f);
    return mix(a, b, u.x) + (c - a) * u.y * (1.0 - u.x) + (d - b) * u.x * u.y;
}

vec3 radial_noise(vec2 st, float t) {
    return vec3(length(st) + noise(st * 3.0 + t) * u_noise_amount);
}

vec3 spiral(vec2 st, float t) {
    float angle = atan(st.y, st.x);
    return vec3((sin(angle * 5.0 + t) * 0.5 + 0.5) * length(st));
}

vec3 grid(vec2 st, float t) {
    vec2 cell = fract(st * 5.0);
    return vec3(smoothstep(0.4, 0.5, length(cell - 0.5)));
}

vec3 waves(vec2 st, float t) {
    return vec3(sin(st.x * 10.0 + t) * cos(st.y * 10.0 + t) * 0.5 + 0.5);
}

vec3 concentric_rings(vec2 st, float t) {
    float d = length(st);
    return vec3(sin(d * 10.0 - t), sin(d * 20.0 - t), sin(d * 30.0 - t)) * 0.5 + 0.5;
}

vec3 turbulence(vec2 st, float t) {
    vec2 q = vec2(noise(st + t), noise(st + 1.0));
    vec2 r = vec2(
        noise(st + 1.0 * q + vec2(1.7, 9.2) + 0.15 * t),
        noise(st + 1.0 * q + vec2(8.3, 2.8) + 0.126 * t)
    );
    return vec3(noise(st + 1.0 * r));
}

void main() {
    vec2 pos = gl_FragCoord.xy / u_resolution.xy * 2.0 - 1.0;

    // Same noise sample for both axes
    float warp = noise(pos * u_distortion_scale);
    pos += vec2(warp * u_distortion_x, warp * u_distortion_y);

    float t = u_time * 0.2;
    vec3 pattern;
    if (u_pattern == 0) pattern = radial_noise(pos, t);
    else if (u_pattern == 1) pattern = spiral(pos, t);
    else if (u_pattern == 2) pattern = grid(pos, t);
    else if (u_pattern == 3) pattern = waves(pos, t);
    else if (u_pattern == 4) pattern = concentric_rings(pos, t);
    else pattern = turbulence(pos, t);

    vec3 color = u_colors[0];
    for (int i = 1; i < 10; i++) {
        if (i >= u_color_count) break;
        float mix_factor = float(i) / float(u_color_count - 1);
        color = mix(color, u_colors[i], smoothstep(mix_factor - 0.1, mix_factor + 0.1, pattern.x));
    }

    color += random(pos + t) * u_noise_amount * 0.15;
    color = mix(color, vec3(0.5), u_blur_amount * 0.5);

    f_color = vec4(color, 1.0);
}
"""


# ============================================================================
# GPU Renderer
# ============================================================================

class ModernGLRenderer:
    """Fragment-shader renderer in a standalone OpenGL context

    The context, program and framebuffer are created once; each frame only
    uploads uniforms and draws one quad.

    Side effects:
    - Creates an OpenGL context
    - Allocates a framebuffer and vertex buffer
    - Compiles the gradient shader program
    """

    name = "moderngl"

    def __init__(
        self,
        width: int = RASTER_SIZE,
        height: int = RASTER_SIZE,
        timings: Optional[RenderTimings] = None
    ):
        """Initialize the GPU context

        Raises:
            RenderingUnavailable: If no context can be created or the
                shader does not compile
        """
        self.width = width
        self.height = height
        self.timings = timings

        try:
            self.ctx = moderngl.create_standalone_context()
        except Exception as e:
            logger.error(f"OpenGL context creation failed: {e}")
            raise RenderingUnavailable(f"Could not create an OpenGL context: {e}") from e

        try:
            self.prog = self.ctx.program(
                vertex_shader=FULLSCREEN_VERTEX_SHADER,
                fragment_shader=GRADIENT_FRAGMENT_SHADER
            )
        except moderngl.Error as e:
            self.ctx.release()
            logger.error(f"Gradient shader failed to build: {e}")
            raise RenderingUnavailable(f"Gradient shader failed to build: {e}") from e

        self.prog['u_resolution'].value = (float(width), float(height))

        self.fbo = self.ctx.simple_framebuffer((width, height), components=4)

        fullscreen_quad = np.array([
            [-1, -1],  # Bottom-left
            [ 1, -1],  # Bottom-right
            [-1,  1],  # Top-left
            [ 1,  1],  # Top-right
        ], dtype='f4')
        self.vbo = self.ctx.buffer(fullscreen_quad.tobytes())
        self.vao = self.ctx.vertex_array(self.prog, [(self.vbo, '2f', 'in_position')])

    def upload_uniforms(self, params: RenderParameters, time: float) -> None:
        """Write one parameter snapshot into the shader uniforms"""
        self.prog['u_time'].value = float(time)
        self.prog['u_noise_amount'].value = params.noise_amount
        self.prog['u_blur_amount'].value = params.blur_amount
        self.prog['u_distortion_x'].value = params.distortion_x
        self.prog['u_distortion_y'].value = params.distortion_y
        self.prog['u_distortion_scale'].value = params.distortion_scale
        self.prog['u_colors'].write(np.asarray(params.colors, dtype='f4').reshape(MAX_COLOR_STOPS, 3).tobytes())
        self.prog['u_color_count'].value = params.color_count
        self.prog['u_pattern'].value = params.pattern_id

    def render(self, params: RenderParameters, time: float) -> np.ndarray:
        """Draw one frame and read it back

        The context is made current on the calling thread, so the render
        loop's worker thread can drive a context created elsewhere.

        Returns:
            RGBA8 raster (height, width, 4), row 0 at the top
        """
        with self.ctx:
            with time_operation(self.timings, 'gpu_render'):
                self.upload_uniforms(params, time)
                self.fbo.use()
                self.fbo.clear(0.0, 0.0, 0.0, 1.0)
                self.vao.render(moderngl.TRIANGLE_STRIP, vertices=4)

            with time_operation(self.timings, 'read_framebuffer'):
                raw = self.fbo.read(components=4)
                img = np.frombuffer(raw, dtype='u1').reshape((self.height, self.width, 4))
                # OpenGL origin is bottom-left, rasters are top-left
                return np.flip(img, axis=0).copy()

    def close(self) -> None:
        """Release GPU resources"""
        with self.ctx:
            self.vao.release()
            self.vbo.release()
            self.fbo.release()
            self.prog.release()
        self.ctx.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_renderer(config: RenderConfig, timings: Optional[RenderTimings] = None):
    """Build the renderer named by config.backend

    Raises:
        RenderingUnavailable: If the moderngl backend cannot start
    """
    if config.backend == "moderngl":
        renderer = ModernGLRenderer(config.width, config.height, timings=timings)
    else:
        renderer = NumpyRenderer(config.width, config.height)
    logger.info(f"Using {renderer.name} renderer ({config.width}x{config.height})")
    return renderer
