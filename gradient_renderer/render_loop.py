"""
Render Loop - Imperative Shell

Drives one full-raster render per scheduled tick on the asyncio event loop.

Each tick reads the latest parameter snapshot, so a change made between two
ticks is visible on the very next frame. The renderer is persistent: nothing
is rebuilt when parameters change and elapsed time keeps running.

Renders run on a single dedicated worker thread, never on the event loop,
so timers such as the video capture keep their deadlines while a frame is
being computed. One thread also keeps a GL context on a single thread.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .config import RenderConfig
from .core import empty_raster
from .errors import RenderingUnavailable
from .params import ParameterStore
from .timing import RenderTimings, time_operation

logger = logging.getLogger(__name__)


class LoopState(Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    FAILED = "failed"


class RenderLoop:
    """Play/pause state machine that owns the raster

    Only the loop writes `raster`; it is replaced wholesale every tick, so
    readers (the exporter) always see a complete frame.

    Attributes:
        raster: Latest RGBA8 frame, shape (height, width, 4)
        state: Current LoopState
        failure: The RenderingUnavailable that ended the session, if any
        frames_rendered: Ticks completed since creation
    """

    def __init__(
        self,
        renderer,
        store: ParameterStore,
        config: Optional[RenderConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        timings: Optional[RenderTimings] = None
    ):
        self.renderer = renderer
        self.store = store
        self.config = config if config is not None else RenderConfig()
        self.clock = clock
        self.timings = timings

        self.raster: np.ndarray = empty_raster(self.config.width, self.config.height)
        self.state = LoopState.PAUSED
        self.failure: Optional[RenderingUnavailable] = None
        self.frames_rendered = 0

        self._task: Optional[asyncio.Task] = None
        self._play_start: Optional[float] = None
        self._paused_elapsed = 0.0
        self._render_thread = ThreadPoolExecutor(max_workers=1, thread_name_prefix='render')

    # ------------------------------------------------------------------
    # Time
    # ------------------------------------------------------------------

    def elapsed(self, now: Optional[float] = None) -> float:
        """Seconds of animation time at `now`; frozen while paused"""
        if self.state is not LoopState.PLAYING or self._play_start is None:
            return self._paused_elapsed
        now = self.clock() if now is None else now
        return now - self._play_start

    def seek(self, seconds: float) -> None:
        """Jump the animation clock to `seconds`"""
        if self.state is LoopState.PLAYING:
            self._play_start = self.clock() - seconds
        self._paused_elapsed = seconds

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def play(self) -> None:
        """Enter PLAYING and schedule ticks on the running event loop

        Animation time resumes where the last pause left it.

        Raises:
            RenderingUnavailable: If the session already failed
            RuntimeError: If called outside a running event loop
        """
        if self.state is LoopState.FAILED:
            raise self.failure
        if self.state is LoopState.PLAYING:
            return

        loop = asyncio.get_running_loop()
        self._cancel_pending()
        self._play_start = self.clock() - self._paused_elapsed
        self.state = LoopState.PLAYING
        self._task = loop.create_task(self._run())
        logger.debug(f"Playing from t={self._paused_elapsed:.3f}s")

    def pause(self) -> None:
        """Enter PAUSED; the raster keeps its last frame"""
        if self.state is not LoopState.PLAYING:
            return
        self._paused_elapsed = self.elapsed()
        self.state = LoopState.PAUSED
        self._cancel_pending()
        logger.debug(f"Paused at t={self._paused_elapsed:.3f}s")

    def toggle(self) -> LoopState:
        """Play if paused, pause if playing"""
        if self.state is LoopState.PLAYING:
            self.pause()
        else:
            self.play()
        return self.state

    async def stop(self) -> None:
        """Pause and wait until no tick is pending or in flight

        Raises:
            Exception: Whatever unexpected error ended the tick schedule
        """
        task = self._task
        self.pause()
        self._task = None
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
            finally:
                # A cancelled tick may still be running on the render thread
                await asyncio.get_running_loop().run_in_executor(self._render_thread, _drain)

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def _render(self, snapshot, elapsed: float) -> np.ndarray:
        """Runs on the render thread"""
        with time_operation(self.timings, 'tick'):
            return self.renderer.render(snapshot, elapsed)

    def _commit(self, raster: np.ndarray) -> np.ndarray:
        self.raster = raster
        self.frames_rendered += 1
        return raster

    def render_frame(self, now: Optional[float] = None) -> np.ndarray:
        """Run one tick, blocking until the render thread is done

        Raises:
            RenderingUnavailable: If the graphics context is lost; the loop
                enters FAILED
            Exception: Any other renderer error, unchanged; the loop state
                is left as it was
        """
        if self.state is LoopState.FAILED:
            raise self.failure

        snapshot = self.store.current
        elapsed = self.elapsed(now)
        try:
            raster = self._render_thread.submit(self._render, snapshot, elapsed).result()
        except RenderingUnavailable as e:
            self._fail(e)
            raise
        return self._commit(raster)

    async def _tick(self) -> None:
        snapshot = self.store.current
        elapsed = self.elapsed()
        try:
            raster = await asyncio.get_running_loop().run_in_executor(
                self._render_thread, self._render, snapshot, elapsed
            )
        except RenderingUnavailable as e:
            self._fail(e)
            raise
        if self.state is LoopState.PLAYING:
            self._commit(raster)

    async def _run(self) -> None:
        while self.state is LoopState.PLAYING:
            try:
                await self._tick()
            except RenderingUnavailable:
                return
            except Exception:
                logger.exception("Render tick failed, pausing")
                self._paused_elapsed = self.elapsed()
                self.state = LoopState.PAUSED
                raise
            await asyncio.sleep(self.config.frame_interval)

    def _fail(self, error: RenderingUnavailable) -> None:
        logger.error(f"Render session failed: {error}")
        self.failure = error
        self.state = LoopState.FAILED
        self._task = None

    async def close(self) -> None:
        """Stop ticking, release the renderer and the render thread"""
        try:
            await self.stop()
        finally:
            await asyncio.get_running_loop().run_in_executor(self._render_thread, self.renderer.close)
            self._render_thread.shutdown(wait=False)

    def release(self) -> None:
        """Synchronous close for sessions that never played"""
        try:
            self._render_thread.submit(self.renderer.close).result()
        finally:
            self._render_thread.shutdown(wait=True)


def _drain() -> None:
    pass
