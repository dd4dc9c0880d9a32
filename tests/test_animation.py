"""
Tests for the animated-image subsystem.

Tests cover:
- Disposal handling in the frame decoder (none, background, previous)
- Real GIF frames decoded from their own pixels
- Frame delay conversion and floor
- Scheduler playback, pause/stop, synchronous seek, teardown
- GIF encoding round trips through Pillow
"""

import asyncio
import io

import numpy as np
import pytest
from PIL import Image

from sprite_mutator.animation import (
    AnimationDecoder,
    AsyncioFrameClock,
    FrameScheduler,
    GifEncoder,
    PlaybackState,
    decode_gif,
)
from sprite_mutator.animation.decoder import split_gif_frames
from sprite_mutator.data import AnimationFrame, FrameInfo
from sprite_mutator.errors import DecodeError, EncoderError

from helpers import FakeFrameSource, ManualFrameClock, frame_pixels, solid_surface


RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
GREEN = (0, 255, 0, 255)


def three_frame_source(second_disposal):
    """10x10 animation: blue dot, 4x4 red square at (2,2), green dot."""
    return FakeFrameSource(
        10,
        10,
        [
            (FrameInfo(0, 0, 1, 1, delay=10, disposal=1), frame_pixels(10, 10, (0, 0, 1, 1), BLUE)),
            (FrameInfo(2, 2, 4, 4, delay=10, disposal=second_disposal), frame_pixels(10, 10, (2, 2, 4, 4), RED)),
            (FrameInfo(8, 8, 1, 1, delay=10, disposal=1), frame_pixels(10, 10, (8, 8, 1, 1), GREEN)),
        ],
    )


# =============================================================================
# Decoder
# =============================================================================


class TestAnimationDecoder:
    """Persistent canvas with per-frame disposal."""

    def test_restore_to_background_clears_region_before_next_frame(self):
        decoded = AnimationDecoder(three_frame_source(2)).decode_all()
        second, third = decoded.frames[1].surface, decoded.frames[2].surface
        assert np.all(second.pixels[2:6, 2:6, 3] == 1.0)
        assert np.all(third.pixels[2:6, 2:6, 3] == 0.0)
        assert third.pixels[0, 0, 3] == 1.0
        assert third.pixels[8, 8, 3] == 1.0

    def test_no_disposal_keeps_pixels(self):
        decoded = AnimationDecoder(three_frame_source(1)).decode_all()
        assert np.all(decoded.frames[2].surface.pixels[2:6, 2:6, 3] == 1.0)

    def test_restore_to_previous_puts_back_earlier_canvas(self):
        decoded = AnimationDecoder(three_frame_source(3)).decode_all()
        third = decoded.frames[2].surface
        assert np.all(third.pixels[2:6, 2:6, 3] == 0.0)
        assert third.pixels[0, 0, 3] == 1.0

    def test_frames_are_independent_snapshots(self):
        decoded = AnimationDecoder(three_frame_source(2)).decode_all()
        assert decoded.frames[0].surface.pixels[8, 8, 3] == 0.0
        assert decoded.frames[0].surface is not decoded.frames[1].surface

    def test_delay_converted_with_floor(self):
        source = FakeFrameSource(
            2,
            2,
            [
                (FrameInfo(0, 0, 2, 2, delay=0), frame_pixels(2, 2, (0, 0, 2, 2), RED)),
                (FrameInfo(0, 0, 2, 2, delay=1), frame_pixels(2, 2, (0, 0, 2, 2), RED)),
                (FrameInfo(0, 0, 2, 2, delay=7), frame_pixels(2, 2, (0, 0, 2, 2), RED)),
            ],
        )
        decoded = AnimationDecoder(source).decode_all()
        assert [frame.duration_ms for frame in decoded.frames] == [20, 20, 70]
        assert (decoded.width, decoded.height) == (2, 2)

    def test_mismatched_frame_shape_is_rejected(self):
        source = FakeFrameSource(4, 4, [(FrameInfo(0, 0, 2, 2, delay=1), np.zeros((2, 2, 4), np.uint8))])
        with pytest.raises(DecodeError):
            AnimationDecoder(source).decode_all()

    def test_empty_source_is_rejected(self):
        with pytest.raises(DecodeError):
            AnimationDecoder(FakeFrameSource(4, 4, [])).decode_all()


class TestDecodeGif:
    """Decoding real GIF bytes through Pillow."""

    def _gif(self):
        frames = [Image.new("RGB", (6, 6), (255, 0, 0)), Image.new("RGB", (6, 6), (0, 0, 255))]
        buffer = io.BytesIO()
        frames[0].save(buffer, format="GIF", save_all=True, append_images=frames[1:], duration=[100, 50], loop=0)
        return buffer.getvalue()

    def test_frames_and_delays(self):
        decoded = decode_gif(self._gif())
        assert len(decoded.frames) == 2
        assert [frame.duration_ms for frame in decoded.frames] == [100, 50]
        assert np.allclose(decoded.frames[0].surface.pixels[3, 3], [1.0, 0.0, 0.0, 1.0], atol=0.02)
        assert np.allclose(decoded.frames[1].surface.pixels[3, 3], [0.0, 0.0, 1.0, 1.0], atol=0.02)

    def _disposal_gif(self):
        # Palette: 0 red, 1 blue, 2 green, 3 transparent.
        palette = [255, 0, 0, 0, 0, 255, 0, 255, 0, 0, 0, 0] + [0] * (256 * 3 - 12)

        def frame(fill, dots):
            image = Image.new("P", (10, 10), fill)
            image.putpalette(palette)
            for xy, index in dots:
                image.putpixel(xy, index)
            return image

        frames = [
            frame(0, []),
            frame(3, [((5, 5), 1)]),
            frame(3, [((0, 0), 2)]),
        ]
        buffer = io.BytesIO()
        frames[0].save(
            buffer,
            format="GIF",
            save_all=True,
            append_images=frames[1:],
            duration=[100, 100, 100],
            disposal=[0, 2, 0],
            transparency=3,
            optimize=False,
            loop=0,
        )
        return buffer.getvalue()

    def test_split_yields_one_stream_per_frame(self):
        pieces = split_gif_frames(self._disposal_gif())
        assert len(pieces) == 3
        assert all(piece[:6] == b"GIF89a" and piece[-1:] == b"\x3b" for piece in pieces)

    def test_restore_to_background_on_real_gif(self):
        decoded = decode_gif(self._disposal_gif())
        first, second, third = (frame.surface.pixels for frame in decoded.frames)

        assert np.allclose(first[0, 0], [1.0, 0.0, 0.0, 1.0], atol=0.02)
        # Transparent pixels of the second frame do not carry the red forward.
        assert second[0, 0, 3] == 0.0
        assert second[9, 9, 3] == 0.0
        assert np.allclose(second[5, 5], [0.0, 0.0, 1.0, 1.0], atol=0.02)
        # The second frame's rectangle is cleared before the third is drawn.
        assert np.allclose(third[0, 0], [0.0, 1.0, 0.0, 1.0], atol=0.02)
        assert third[5, 5, 3] == 0.0

    def test_garbage_raises_decode_error(self):
        with pytest.raises(DecodeError):
            decode_gif(b"definitely not a gif")

    def test_truncated_stream_raises_decode_error(self):
        data = self._gif()
        with pytest.raises(DecodeError):
            split_gif_frames(data[:-2])


# =============================================================================
# Scheduler
# =============================================================================


def frames(count=3, duration=100):
    return [AnimationFrame(solid_surface(1, 1), duration) for _ in range(count)]


class TestFrameScheduler:
    """Frame-clock driven playback."""

    def test_advances_twice_in_250ms(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        seen = []
        scheduler.set_frames(frames())
        scheduler.set_callback(lambda frame, index: seen.append(index))
        scheduler.play()
        clock.advance(250)
        assert scheduler.current_frame_index == 2
        assert seen == [1, 2]

    def test_wraps_around(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        scheduler.set_frames(frames())
        scheduler.play()
        clock.advance(300)
        assert scheduler.current_frame_index == 0

    def test_seek_is_synchronous_and_clamped(self):
        scheduler = FrameScheduler(ManualFrameClock())
        seen = []
        scheduler.set_frames(frames())
        scheduler.set_callback(lambda frame, index: seen.append(index))
        scheduler.seek(1)
        assert seen == [1]
        scheduler.seek(99)
        assert seen == [1, 2]
        assert scheduler.current_frame_index == 2
        assert scheduler.state is PlaybackState.STOPPED

    def test_pause_keeps_index_and_stops_ticks(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        scheduler.set_frames(frames())
        scheduler.play()
        clock.advance(150)
        scheduler.pause()
        clock.advance(500)
        assert scheduler.current_frame_index == 1
        assert scheduler.state is PlaybackState.PAUSED
        assert clock.pending == []

    def test_stop_resets_index(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        scheduler.set_frames(frames())
        scheduler.play()
        clock.advance(150)
        scheduler.stop()
        assert scheduler.current_frame_index == 0
        assert not scheduler.is_playing

    def test_play_without_frames_is_a_no_op(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        scheduler.play()
        assert scheduler.state is PlaybackState.STOPPED
        assert clock.pending == []

    def test_play_twice_schedules_once(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        scheduler.set_frames(frames())
        scheduler.play()
        scheduler.play()
        assert len(clock.pending) == 1

    def test_set_frames_stops_playback(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        scheduler.set_frames(frames())
        scheduler.play()
        clock.advance(120)
        scheduler.set_frames(frames(2))
        assert scheduler.current_frame_index == 0
        assert scheduler.frame_count == 2
        assert not scheduler.is_playing

    def test_no_ticks_after_close(self):
        clock = ManualFrameClock()
        scheduler = FrameScheduler(clock)
        seen = []
        scheduler.set_frames(frames())
        scheduler.set_callback(lambda frame, index: seen.append(index))
        scheduler.play()
        scheduler.close()
        clock.advance(1000)
        scheduler.play()
        assert seen == []
        assert clock.pending == []

    @pytest.mark.asyncio
    async def test_asyncio_clock_drives_playback(self):
        scheduler = FrameScheduler(AsyncioFrameClock(fps=200))
        seen = []
        scheduler.set_frames(frames(3, 20))
        scheduler.set_callback(lambda frame, index: seen.append(index))
        scheduler.play()
        await asyncio.sleep(0.2)
        scheduler.close()
        assert seen
        assert seen[0] == 1


# =============================================================================
# Encoder
# =============================================================================


class TestGifEncoder:
    """Batch GIF encoding off the event loop."""

    @pytest.mark.asyncio
    async def test_round_trip_keeps_frames_delays_and_transparency(self):
        red = solid_surface(8, 8, (1.0, 0.0, 0.0, 1.0))
        red.pixels[0, 0] = 0.0
        blue = solid_surface(8, 8, (0.0, 0.0, 1.0, 1.0))
        progress = []

        data = await GifEncoder().encode(
            [AnimationFrame(red, 100), AnimationFrame(blue, 200)], 8, 8, on_progress=progress.append
        )

        image = Image.open(io.BytesIO(data))
        assert image.format == "GIF"
        assert image.n_frames == 2
        assert image.info["duration"] == 100
        first = image.convert("RGBA")
        assert first.getpixel((0, 0))[3] == 0
        assert first.getpixel((4, 4)) == (255, 0, 0, 255)
        image.seek(1)
        assert image.info["duration"] == 200
        assert progress and progress[-1] == 1.0

    @pytest.mark.asyncio
    async def test_frames_are_resized_to_output(self):
        data = await GifEncoder().encode([AnimationFrame(solid_surface(4, 4), 100)], 16, 16)
        assert Image.open(io.BytesIO(data)).size == (16, 16)

    @pytest.mark.asyncio
    async def test_no_frames_is_an_encoder_error(self):
        with pytest.raises(EncoderError):
            await GifEncoder().encode([], 8, 8)

    def test_writer_check_runs_once(self):
        encoder = GifEncoder()
        encoder.ensure_writer()
        encoder.ensure_writer()
        assert encoder._writer_ready

    def test_quality_must_be_positive(self):
        with pytest.raises(ValueError):
            GifEncoder(quality=0)
