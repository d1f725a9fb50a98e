"""
WebM Capture Encoder - Imperative Shell

Streams captured RGBA frames into an FFmpeg subprocess that writes the
intermediate WebM container for video export.

This module coordinates:
- Input: RGBA8 rasters (numpy arrays), one per captured frame
- Process: FFmpeg subprocess with VP8 encoding
- Output: WebM bytes handed to the transcoder
"""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import List, Optional

import numpy as np

from .errors import ExportFailure

logger = logging.getLogger(__name__)

FFMPEG_INSTALL_HINT = (
    "FFmpeg not found. Please install FFmpeg:\n"
    "  macOS: brew install ffmpeg\n"
    "  Linux: apt-get install ffmpeg\n"
    "  Windows: Download from https://ffmpeg.org/"
)


def stderr_tail(stderr: bytes, limit: int = 500) -> str:
    """Last `limit` characters of an FFmpeg stderr dump"""
    return stderr.decode('utf-8', errors='replace')[-limit:]


class WebMEncoder:
    """FFmpeg encoder for the capture stream

    Manages the FFmpeg subprocess lifecycle: start(), write_frame() per
    captured frame, finish() to collect the container bytes.

    Side effects:
    - Spawns FFmpeg subprocess
    - Writes frame data to its stdin pipe
    - Creates (and removes) a temporary output file
    """

    format = "webm"

    def __init__(
        self,
        width: int,
        height: int,
        fps: int,
        ffmpeg_binary: str = "ffmpeg",
        bitrate: str = "4M"
    ):
        """Initialize encoder

        Args:
            width, height: Frame size in pixels
            fps: Capture rate
            ffmpeg_binary: FFmpeg executable
            bitrate: Target VP8 bitrate
        """
        self.width = width
        self.height = height
        self.fps = fps
        self.ffmpeg_binary = ffmpeg_binary
        self.bitrate = bitrate

        self.process: Optional[asyncio.subprocess.Process] = None
        self.frames_written = 0
        self._workdir: Optional[tempfile.TemporaryDirectory] = None
        self._stderr_log = None

    @property
    def output_path(self) -> Path:
        return Path(self._workdir.name) / "capture.webm"

    @property
    def log_path(self) -> Path:
        return Path(self._workdir.name) / "ffmpeg.log"

    def _read_log(self) -> bytes:
        self._stderr_log.flush()
        return self.log_path.read_bytes()

    def build_command(self, output_path: str) -> List[str]:
        """Pure function: FFmpeg arguments for raw RGBA in, WebM out"""
        return [
            self.ffmpeg_binary,
            '-y',
            '-loglevel', 'error',
            '-f', 'rawvideo',
            '-vcodec', 'rawvideo',
            '-s', f'{self.width}x{self.height}',
            '-pix_fmt', 'rgba',
            '-r', str(self.fps),
            '-i', '-',
            '-an',
            '-c:v', 'libvpx',
            '-b:v', self.bitrate,
            '-deadline', 'realtime',
            '-auto-alt-ref', '0',
            '-f', 'webm',
            output_path,
        ]

    async def start(self) -> None:
        """Spawn FFmpeg

        FFmpeg's stderr goes to a log file in the work directory, so a chatty
        encoder can never fill a pipe nobody reads and stall the capture.

        Raises:
            ExportFailure: If FFmpeg cannot be started
        """
        if self.process is not None:
            raise ExportFailure("Encoder already started")

        self._workdir = tempfile.TemporaryDirectory(prefix="gradient-capture-")
        self._stderr_log = open(self.log_path, 'wb')
        cmd = self.build_command(str(self.output_path))
        logger.info(f"Starting WebM encoder: {self.width}x{self.height} @ {self.fps}fps")

        try:
            self.process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=self._stderr_log
            )
        except FileNotFoundError as e:
            self._cleanup_workdir()
            raise ExportFailure(FFMPEG_INSTALL_HINT) from e
        except OSError as e:
            self._cleanup_workdir()
            raise ExportFailure(f"Failed to start FFmpeg: {e}") from e

    async def write_frame(self, frame: np.ndarray) -> None:
        """Write a single RGBA8 frame

        Raises:
            ExportFailure: If the encoder is not running or the pipe broke
            ValueError: If the frame has the wrong shape or dtype
        """
        if self.process is None:
            raise ExportFailure("Encoder not started. Call start() first.")

        if frame.shape != (self.height, self.width, 4):
            raise ValueError(
                f"Frame shape mismatch: expected ({self.height}, {self.width}, 4), "
                f"got {frame.shape}"
            )
        if frame.dtype != np.uint8:
            raise ValueError(f"Frame dtype must be uint8, got {frame.dtype}")

        try:
            self.process.stdin.write(np.ascontiguousarray(frame).tobytes())
            await self.process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            await self.process.wait()
            raise ExportFailure(f"FFmpeg pipe broken. FFmpeg error: {stderr_tail(self._read_log())}") from e
        self.frames_written += 1

    async def finish(self) -> bytes:
        """Close the pipe, wait for FFmpeg and return the WebM bytes

        Raises:
            ExportFailure: If FFmpeg exits non-zero
        """
        if self.process is None:
            raise ExportFailure("Encoder not started")

        try:
            self.process.stdin.close()
            returncode = await self.process.wait()
            if returncode != 0:
                raise ExportFailure(
                    f"FFmpeg encoding failed (code {returncode}): {stderr_tail(self._read_log())}"
                )

            data = self.output_path.read_bytes()
            logger.info(f"Encoded {self.frames_written} frames to WebM ({len(data)} bytes)")
            return data
        finally:
            self.process = None
            self._cleanup_workdir()

    async def abort(self) -> None:
        """Kill FFmpeg and drop the partial output"""
        if self.process is not None:
            if self.process.returncode is None:
                self.process.kill()
                await self.process.wait()
            self.process = None
        self._cleanup_workdir()

    def _cleanup_workdir(self) -> None:
        if self._stderr_log is not None:
            self._stderr_log.close()
            self._stderr_log = None
        if self._workdir is not None:
            self._workdir.cleanup()
            self._workdir = None
