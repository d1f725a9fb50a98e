"""
Tests for the render loop

Uses a fake renderer and a controllable clock so tick scheduling, time
continuity and failure handling can be checked without real rendering.
"""

import asyncio
import threading
import time

import numpy as np
import pytest

from gradient_renderer.config import RenderConfig
from gradient_renderer.core import NumpyRenderer
from gradient_renderer.errors import RenderingUnavailable
from gradient_renderer.params import ParameterStore
from gradient_renderer.render_loop import LoopState, RenderLoop


# ============================================================================
# Test Fixtures
# ============================================================================

class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


class RecordingRenderer:
    """Records every (params, time) it is asked to render"""

    name = "recording"

    def __init__(self, width=8, height=8):
        self.width = width
        self.height = height
        self.calls = []
        self.closed = False

    def render(self, params, time):
        self.calls.append((params, time))
        raster = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        raster[..., 0] = int(params.noise_amount * 100)
        raster[..., 3] = 255
        return raster

    def close(self):
        self.closed = True


class BrokenRenderer(RecordingRenderer):
    def __init__(self, error):
        super().__init__()
        self.error = error

    def render(self, params, time):
        raise self.error


@pytest.fixture
def config():
    return RenderConfig(width=8, height=8, frame_interval=0.001)


@pytest.fixture
def store():
    return ParameterStore(rng=np.random.default_rng(0))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def loop(renderer, store, config, clock):
    return RenderLoop(renderer, store, config, clock=clock)


# ============================================================================
# Synchronous ticks
# ============================================================================

class TestRenderFrame:
    """Single ticks driven by render_frame"""

    def test_starts_paused_with_black_raster(self, loop):
        assert loop.state is LoopState.PAUSED
        assert loop.raster.shape == (8, 8, 4)
        assert np.all(loop.raster[..., :3] == 0)

    def test_tick_replaces_raster(self, loop):
        before = loop.raster
        raster = loop.render_frame()
        assert loop.raster is raster
        assert raster is not before
        assert loop.frames_rendered == 1

    def test_parameter_change_seen_on_next_tick(self, loop, store, renderer):
        loop.render_frame()
        store.update(noise_amount=0.9)
        loop.render_frame()
        assert renderer.calls[0][0].noise_amount == 0.5
        assert renderer.calls[1][0] is store.current
        assert loop.raster[0, 0, 0] == 90

    def test_paused_time_is_frozen(self, loop, renderer, clock):
        loop.seek(2.5)
        loop.render_frame()
        clock.now += 10.0
        loop.render_frame()
        assert [call[1] for call in renderer.calls] == [2.5, 2.5]

    def test_real_renderer_tick(self, store, config):
        loop = RenderLoop(NumpyRenderer(8, 8), store, config)
        raster = loop.render_frame()
        assert raster.shape == (8, 8, 4)
        assert raster.dtype == np.uint8


class TestFailure:
    """Rendering unavailable ends the session"""

    def test_rendering_unavailable_enters_failed(self, store, config):
        loop = RenderLoop(BrokenRenderer(RenderingUnavailable("no context")), store, config)
        before = loop.raster
        with pytest.raises(RenderingUnavailable):
            loop.render_frame()
        assert loop.state is LoopState.FAILED
        assert str(loop.failure) == "no context"
        assert loop.raster is before

    def test_other_errors_propagate_unchanged(self, store, config):
        """Only a lost graphics context ends the session"""
        loop = RenderLoop(BrokenRenderer(ValueError("bad uniform")), store, config)
        with pytest.raises(ValueError, match="bad uniform"):
            loop.render_frame()
        assert loop.state is LoopState.PAUSED
        assert loop.failure is None

    @pytest.mark.asyncio
    async def test_other_errors_during_play_pause_and_surface_on_stop(self, store, config):
        loop = RenderLoop(BrokenRenderer(ValueError("bad uniform")), store, config)
        loop.play()
        await asyncio.sleep(0.02)
        assert loop.state is LoopState.PAUSED
        with pytest.raises(ValueError):
            await loop.stop()
        assert loop.failure is None

    @pytest.mark.asyncio
    async def test_play_after_failure_raises(self, store, config):
        loop = RenderLoop(BrokenRenderer(RenderingUnavailable("gone")), store, config)
        with pytest.raises(RenderingUnavailable):
            loop.render_frame()
        with pytest.raises(RenderingUnavailable):
            loop.play()

    @pytest.mark.asyncio
    async def test_failure_during_play_stops_ticking(self, store, config):
        renderer = BrokenRenderer(RenderingUnavailable("lost"))
        loop = RenderLoop(renderer, store, config)
        loop.play()
        await asyncio.sleep(0.02)
        assert loop.state is LoopState.FAILED
        assert isinstance(loop.failure, RenderingUnavailable)


# ============================================================================
# Scheduled ticks
# ============================================================================

class TestPlayPause:
    """Cooperative schedule on the event loop"""

    def test_play_needs_event_loop(self, loop):
        with pytest.raises(RuntimeError):
            loop.play()

    @pytest.mark.asyncio
    async def test_play_renders_until_paused(self, loop, renderer):
        loop.play()
        assert loop.state is LoopState.PLAYING
        await asyncio.sleep(0.05)
        await loop.stop()
        assert loop.state is LoopState.PAUSED

        rendered = len(renderer.calls)
        assert rendered > 1
        last_raster = loop.raster

        await asyncio.sleep(0.05)
        assert len(renderer.calls) == rendered
        assert loop.raster is last_raster

    @pytest.mark.asyncio
    async def test_play_twice_keeps_one_schedule(self, loop, renderer):
        loop.play()
        loop.play()
        await asyncio.sleep(0.02)
        await loop.stop()
        assert loop.state is LoopState.PAUSED
        assert len(renderer.calls) > 0

    @pytest.mark.asyncio
    async def test_toggle(self, loop):
        assert loop.toggle() is LoopState.PLAYING
        assert loop.toggle() is LoopState.PAUSED
        await loop.stop()

    @pytest.mark.asyncio
    async def test_elapsed_from_play_start(self, loop, clock):
        loop.play()
        clock.now += 1.5
        assert loop.elapsed() == pytest.approx(1.5)
        await loop.stop()

    @pytest.mark.asyncio
    async def test_parameter_change_keeps_elapsed(self, loop, store, clock, renderer):
        """Changing parameters never restarts animation time"""
        loop.play()
        clock.now += 3.0
        store.update(pattern_id=2)
        loop.render_frame()
        assert renderer.calls[-1][1] == pytest.approx(3.0)
        assert renderer.calls[-1][0].pattern_id == 2
        await loop.stop()

    @pytest.mark.asyncio
    async def test_resume_continues_time(self, loop, clock):
        loop.play()
        clock.now += 3.0
        loop.pause()
        clock.now += 20.0
        assert loop.elapsed() == pytest.approx(3.0)

        loop.play()
        clock.now += 1.0
        assert loop.elapsed() == pytest.approx(4.0)
        await loop.stop()

    @pytest.mark.asyncio
    async def test_seek_while_playing(self, loop, clock):
        loop.play()
        loop.seek(10.0)
        clock.now += 0.5
        assert loop.elapsed() == pytest.approx(10.5)
        await loop.stop()

    @pytest.mark.asyncio
    async def test_close_releases_renderer(self, loop, renderer):
        loop.play()
        await asyncio.sleep(0.01)
        await loop.close()
        assert renderer.closed
        assert loop.state is LoopState.PAUSED

    def test_release_closes_renderer(self, loop, renderer):
        loop.render_frame()
        loop.release()
        assert renderer.closed


class SlowRenderer(RecordingRenderer):
    """Blocks its calling thread for `delay` seconds per frame"""

    def __init__(self, delay):
        super().__init__()
        self.delay = delay
        self.threads = set()

    def render(self, params, time_):
        self.threads.add(threading.current_thread().name)
        time.sleep(self.delay)
        return super().render(params, time_)


class TestRenderThread:
    """Frames are computed away from the event loop"""

    @pytest.mark.asyncio
    async def test_ticks_run_on_one_worker_thread(self, store, config):
        renderer = SlowRenderer(0.0)
        loop = RenderLoop(renderer, store, config)
        loop.render_frame()
        loop.play()
        await asyncio.sleep(0.02)
        await loop.close()

        assert len(renderer.threads) == 1
        assert threading.current_thread().name not in renderer.threads

    @pytest.mark.asyncio
    async def test_event_loop_stays_responsive_during_slow_tick(self, store, config):
        loop = RenderLoop(SlowRenderer(0.2), store, config)
        loop.play()

        event_loop = asyncio.get_running_loop()
        gaps = []
        last = event_loop.time()
        for _ in range(10):
            await asyncio.sleep(0.01)
            now = event_loop.time()
            gaps.append(now - last)
            last = now
        await loop.close()

        assert max(gaps) < 0.1
