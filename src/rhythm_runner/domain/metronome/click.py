"""
Metronome click sound.

The click is a short sine burst rendered once as 16-bit mono PCM and replayed
on every beat. Playback goes through sounddevice; when no audio backend is
available the click degrades to silence and the metronome keeps ticking.
"""

import threading
from typing import Protocol

import numpy as np
from loguru import logger

from rhythm_runner.core.config import MetronomeConfig

PCM_MAX = 32767
CLICK_AMPLITUDE = 0.3


class ClickPlayer(Protocol):
    """Anything that can play one click right now."""

    def play(self) -> None: ...


def synthesize_click(
    frequency: float = 800.0,
    duration: float = 0.1,
    sample_rate: int = 44100,
    amplitude: float = CLICK_AMPLITUDE,
) -> np.ndarray:
    """Render a sine click as int16 samples.

    Args:
        frequency: Tone frequency in Hz
        duration: Length in seconds
        sample_rate: Samples per second
        amplitude: Peak level as a fraction of full scale

    Returns:
        Mono int16 array of sample_rate * duration samples
    """
    frame_count = int(sample_rate * duration)
    t = np.arange(frame_count, dtype=np.float64) / float(sample_rate)
    samples = np.sin(2.0 * np.pi * frequency * t) * amplitude * PCM_MAX
    return samples.astype(np.int16)


class SounddeviceClick:
    """Plays the rendered click through the default output device."""

    def __init__(
        self,
        frequency: float = 800.0,
        duration: float = 0.1,
        sample_rate: int = 44100,
        volume: float = 0.7,
    ):
        self.sample_rate = sample_rate
        self._samples = synthesize_click(frequency, duration, sample_rate)
        self._volume = 0.0
        self._buffer = np.zeros(0, dtype=np.float32)
        self._lock = threading.Lock()
        self._sd = None
        self._unavailable = False
        self.volume = volume

    @classmethod
    def from_config(cls, config: MetronomeConfig) -> "SounddeviceClick":
        return cls(
            frequency=config.click_frequency,
            duration=config.click_duration,
            sample_rate=config.sample_rate,
            volume=config.volume,
        )

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        value = min(1.0, max(0.0, float(value)))
        with self._lock:
            self._volume = value
            self._buffer = (self._samples.astype(np.float32) / PCM_MAX) * value

    @property
    def available(self) -> bool:
        return self._load_backend() is not None

    def play(self) -> None:
        sd = self._load_backend()
        if sd is None:
            return
        with self._lock:
            buffer = self._buffer
        sd.play(buffer, samplerate=self.sample_rate, blocking=False)

    def _load_backend(self):
        if self._sd is not None or self._unavailable:
            return self._sd
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            # PortAudio missing or no audio subsystem
            logger.warning(f"Audio output unavailable, metronome will be silent: {e}")
            self._unavailable = True
            return None
        self._sd = sd
        return sd


class SilentClick:
    """Click player that makes no sound (CLI --mute, tests)."""

    def __init__(self) -> None:
        self.plays = 0

    def play(self) -> None:
        self.plays += 1
