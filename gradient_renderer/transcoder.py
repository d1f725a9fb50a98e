"""
Transcoder - Injected Video Conversion Service

The exporter hands the captured container to a Transcoder and waits for the
deliverable. Implementations are injected; the exporter bounds every call
with its own timeout.

Classes:
    Transcoder: Abstract base class
    FFmpegTranscoder: FFmpeg subprocess implementation
"""

import asyncio
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from .encoder import FFMPEG_INSTALL_HINT, stderr_tail
from .errors import ExportFailure

logger = logging.getLogger(__name__)


class Transcoder(ABC):
    """Converts encoded video from one container/format to another"""

    @abstractmethod
    async def transcode(self, data: bytes, source_format: str, target_format: str) -> bytes:
        """
        Convert `data` from source_format to target_format.

        Args:
            data: Encoded input video
            source_format: Input container, e.g. "webm"
            target_format: Output container, e.g. "mp4"

        Returns:
            Encoded output video

        Raises:
            ExportFailure: If conversion fails
        """
        pass


class FFmpegTranscoder(Transcoder):
    """Transcoder backed by an FFmpeg subprocess

    MP4 output needs a seekable file for the moov atom, so input and output
    go through a temporary directory. Cancelling the coroutine kills FFmpeg.
    """

    def __init__(self, ffmpeg_binary: str = "ffmpeg", preset: str = "medium", crf: int = 23):
        self.ffmpeg_binary = ffmpeg_binary
        self.preset = preset
        self.crf = crf

    def build_command(self, input_path: str, output_path: str, target_format: str) -> List[str]:
        """Pure function: FFmpeg arguments for one conversion"""
        cmd = [self.ffmpeg_binary, '-y', '-loglevel', 'error', '-i', input_path, '-an']
        if target_format == "mp4":
            cmd.extend([
                '-vcodec', 'libx264',
                '-preset', self.preset,
                '-crf', str(self.crf),
                '-pix_fmt', 'yuv420p',
                # Move moov atom to the start for streaming
                '-movflags', '+faststart',
            ])
        cmd.extend(['-f', target_format, output_path])
        return cmd

    async def transcode(self, data: bytes, source_format: str, target_format: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="gradient-transcode-") as tmpdir:
            input_path = Path(tmpdir) / f"input.{source_format}"
            output_path = Path(tmpdir) / f"output.{target_format}"
            input_path.write_bytes(data)

            cmd = self.build_command(str(input_path), str(output_path), target_format)
            logger.info(f"Transcoding {len(data)} bytes: {source_format} -> {target_format}")

            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.PIPE
                )
            except FileNotFoundError as e:
                raise ExportFailure(FFMPEG_INSTALL_HINT) from e
            except OSError as e:
                raise ExportFailure(f"Failed to start FFmpeg: {e}") from e

            try:
                _, stderr = await process.communicate()
            except asyncio.CancelledError:
                process.kill()
                await process.wait()
                raise

            if process.returncode != 0:
                raise ExportFailure(
                    f"FFmpeg transcoding failed (code {process.returncode}): {stderr_tail(stderr)}"
                )
            return output_path.read_bytes()
