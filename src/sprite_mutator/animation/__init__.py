"""Animated sources: decoding, playback scheduling and GIF encoding."""

from sprite_mutator.animation.decoder import AnimationDecoder, FrameSource, PillowFrameSource, decode_gif
from sprite_mutator.animation.encoder import GifEncoder
from sprite_mutator.animation.scheduler import AsyncioFrameClock, FrameClock, FrameScheduler, PlaybackState

__all__ = [
    "AnimationDecoder",
    "AsyncioFrameClock",
    "FrameClock",
    "FrameScheduler",
    "FrameSource",
    "GifEncoder",
    "PillowFrameSource",
    "PlaybackState",
    "decode_gif",
]
