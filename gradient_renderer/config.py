"""
Gradient Renderer - Configuration

Fixed raster/video constants and the RenderConfig value used by the
render loop, exporter and CLI.
"""

from dataclasses import dataclass
from typing import Any


# ============================================================================
# Constants
# ============================================================================

RASTER_SIZE = 512           # Raster is always square
MAX_COLOR_STOPS = 10        # Color slots held by the parameter store
FRAME_INTERVAL = 1.0 / 60.0 # Nominal display refresh between ticks
VIDEO_FPS = 30
VIDEO_DURATION = 5.0        # Seconds of wall-clock capture
TRANSCODE_TIMEOUT = 60.0

STILL_FILENAME = "gradient-art.png"
VIDEO_FILENAME = "gradient-art.mp4"

BACKENDS = ("numpy", "moderngl")


@dataclass(frozen=True)
class RenderConfig:
    """Settings for one render session

    Attributes:
        width, height: Raster size in pixels
        frame_interval: Seconds the loop waits between ticks
        video_fps: Capture rate for video export
        video_duration: Capture window in seconds
        transcode_timeout: Seconds before a transcode is abandoned
        ffmpeg_binary: Executable used for encoding and transcoding
        backend: "numpy" (CPU reference) or "moderngl" (GPU shader)
        still_filename, video_filename: Artifact names
    """
    width: int = RASTER_SIZE
    height: int = RASTER_SIZE
    frame_interval: float = FRAME_INTERVAL
    video_fps: int = VIDEO_FPS
    video_duration: float = VIDEO_DURATION
    transcode_timeout: float = TRANSCODE_TIMEOUT
    ffmpeg_binary: str = "ffmpeg"
    backend: str = "numpy"
    still_filename: str = STILL_FILENAME
    video_filename: str = VIDEO_FILENAME

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend {self.backend!r}, expected one of {BACKENDS}")
        if self.video_fps <= 0:
            raise ValueError(f"video_fps must be positive, got {self.video_fps}")
        if self.video_duration <= 0:
            raise ValueError(f"video_duration must be positive, got {self.video_duration}")

    @property
    def frame_count(self) -> int:
        """Number of frames in one video capture window"""
        return int(round(self.video_duration * self.video_fps))

    @classmethod
    def from_args(cls, args: Any) -> "RenderConfig":
        """Build a config from an argparse namespace, ignoring missing options"""
        fields = {}
        for name in ("backend", "ffmpeg_binary", "transcode_timeout"):
            value = getattr(args, name, None)
            if value is not None:
                fields[name] = value
        return cls(**fields)
