"""
Frame Exporter - Imperative Shell

Turns the live raster into downloadable artifacts:
- Still export: PNG of whatever the raster holds right now
- Video export: fixed-window capture -> WebM -> injected transcoder -> MP4

Export failures stay local: they come back as a failed ExportResult and
never stop the render loop or touch the raster.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
from PIL import Image

from .config import RenderConfig
from .encoder import WebMEncoder
from .errors import ExportFailure
from .render_loop import RenderLoop
from .timing import RenderTimings, time_operation
from .transcoder import Transcoder

logger = logging.getLogger(__name__)


# ============================================================================
# Artifacts
# ============================================================================

@dataclass(frozen=True)
class ExportArtifact:
    """Encoded still image or video, immutable once produced"""
    filename: str
    mime_type: str
    data: bytes

    def save(self, directory: Union[str, Path] = ".") -> Path:
        """Write the artifact into `directory` under its filename

        Side effects:
        - Creates the directory if needed
        - Writes to filesystem
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.data)
        return path


@dataclass(frozen=True)
class ExportResult:
    """Outcome of a video export; exactly one of artifact/error is set"""
    success: bool
    artifact: Optional[ExportArtifact] = None
    error: Optional[ExportFailure] = None


def encode_png(raster: np.ndarray) -> bytes:
    """Losslessly encode an RGBA8 raster as PNG"""
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(raster)).save(buffer, format='PNG')
    return buffer.getvalue()


# ============================================================================
# Exporter
# ============================================================================

class FrameExporter:
    """Still and video export against a RenderLoop's raster

    The exporter only ever reads `loop.raster`.
    """

    def __init__(
        self,
        loop: RenderLoop,
        transcoder: Transcoder,
        config: Optional[RenderConfig] = None,
        encoder_factory: Optional[Callable[[], WebMEncoder]] = None,
        timings: Optional[RenderTimings] = None
    ):
        self.loop = loop
        self.transcoder = transcoder
        self.config = config if config is not None else loop.config
        self.encoder_factory = encoder_factory or self._default_encoder
        self.timings = timings

        self.capture_seconds: Optional[float] = None
        self._video_in_progress = False

    def _default_encoder(self) -> WebMEncoder:
        return WebMEncoder(
            width=self.config.width,
            height=self.config.height,
            fps=self.config.video_fps,
            ffmpeg_binary=self.config.ffmpeg_binary
        )

    def export_still(self) -> ExportArtifact:
        """Encode the current raster as PNG, synchronously

        Reflects the last rendered frame, including while paused.
        """
        with time_operation(self.timings, 'export_still'):
            data = encode_png(self.loop.raster)
        logger.info(f"Still export: {self.config.still_filename} ({len(data)} bytes)")
        return ExportArtifact(self.config.still_filename, 'image/png', data)

    async def _capture(self, encoder) -> int:
        """Feed the live raster to the encoder at video_fps for video_duration

        Frame k is taken at start + k / fps. A late frame is written as soon
        as possible rather than dropped, so the frame count is fixed.

        Returns:
            Number of frames captured
        """
        event_loop = asyncio.get_running_loop()
        fps = self.config.video_fps
        start = event_loop.time()

        for k in range(self.config.frame_count):
            delay = start + k / fps - event_loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            await encoder.write_frame(self.loop.raster)

        remaining = start + self.config.video_duration - event_loop.time()
        if remaining > 0:
            await asyncio.sleep(remaining)

        self.capture_seconds = event_loop.time() - start
        return self.config.frame_count

    async def export_video(self) -> ExportResult:
        """Capture, encode and transcode one video

        The render loop keeps running during capture, so parameter changes
        made meanwhile show up in the video.

        Returns:
            ExportResult with the MP4 artifact, or with an ExportFailure
        """
        if self._video_in_progress:
            return ExportResult(success=False, error=ExportFailure("Video export already in progress"))

        self._video_in_progress = True
        encoder = self.encoder_factory()
        try:
            with time_operation(self.timings, 'capture'):
                await encoder.start()
                frames = await self._capture(encoder)
            with time_operation(self.timings, 'encode'):
                container = await encoder.finish()
            logger.info(f"Captured {frames} frames in {self.capture_seconds:.2f}s")

            timeout = self.config.transcode_timeout
            with time_operation(self.timings, 'transcode'):
                video = await asyncio.wait_for(
                    self.transcoder.transcode(container, encoder.format, "mp4"),
                    timeout=timeout
                )
        except asyncio.CancelledError:
            await encoder.abort()
            raise
        except asyncio.TimeoutError:
            failure = ExportFailure(f"Transcoder did not finish within {self.config.transcode_timeout}s")
        except ExportFailure as e:
            failure = e
        except Exception as e:
            failure = ExportFailure(f"Video export failed: {e}")
            failure.__cause__ = e
        else:
            artifact = ExportArtifact(self.config.video_filename, 'video/mp4', bytes(video))
            logger.info(f"Video export: {artifact.filename} ({len(artifact.data)} bytes)")
            return ExportResult(success=True, artifact=artifact)
        finally:
            self._video_in_progress = False

        await encoder.abort()
        logger.error(f"Video export failed: {failure}")
        return ExportResult(success=False, error=failure)
