from __future__ import annotations
import logging
import threading
from enum import Enum
from typing import Callable, Optional, Protocol
import numpy as np
from santo_nordeste.codec import AudioBuffer, DecodeError, decode_base64, decode_pcm
from santo_nordeste.models import Recipe
from santo_nordeste.prompts import narration_text

logger = logging.getLogger(__name__)


class PlaybackError(Exception):
    pass


class PlaybackState(str, Enum):
    STOPPED = "stopped"
    LOADING = "loading"
    PLAYING = "playing"


class NarrationBackend(Protocol):
    def request_narration_audio(self, text: str) -> Optional[str]: ...


class PlaybackHandle(Protocol):
    def stop(self) -> None: ...


class AudioSink(Protocol):
    def play(self, buffer: AudioBuffer, on_finished: Callable[[], None]) -> PlaybackHandle: ...


class _StreamHandle:
    def __init__(self, stream):
        self._stream = stream
        self._closed = False
        self._lock = threading.Lock()

    def stop(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._stream.abort()
        finally:
            self._stream.close()


class SoundDeviceSink:
    """Plays an AudioBuffer on the default output device through PortAudio."""

    def __init__(self, device: int | str | None = None):
        self.device = device

    def play(self, buffer: AudioBuffer, on_finished: Callable[[], None]) -> PlaybackHandle:
        try:
            import sounddevice as sd
        except OSError as e:
            raise PlaybackError(f"Audio output is unavailable: {e}") from e

        samples = np.ascontiguousarray(buffer.samples, dtype=np.float32)
        position = 0

        def callback(outdata, frames, time_info, status):
            nonlocal position
            chunk = samples[position:position + frames]
            outdata[: len(chunk)] = chunk
            position += len(chunk)
            if len(chunk) < frames:
                outdata[len(chunk):] = 0
                raise sd.CallbackStop

        try:
            stream = sd.OutputStream(
                samplerate=buffer.sample_rate,
                channels=buffer.num_channels,
                dtype="float32",
                device=self.device,
                callback=callback,
                finished_callback=on_finished,
            )
            stream.start()
        except (sd.PortAudioError, OSError) as e:
            raise PlaybackError(f"Could not open audio output: {e}") from e
        return _StreamHandle(stream)


class PlaybackController:
    """Narrates one recipe at a time; owns the single active playback session.

    A finished stream is released by the next ``stop``, ``toggle`` or
    ``close`` call, since PortAudio streams cannot be closed from their own
    completion callback.
    """

    def __init__(
        self,
        client: NarrationBackend,
        sink: AudioSink | None = None,
        sample_rate: int = 24000,
    ):
        self._client = client
        self._sink = sink or SoundDeviceSink()
        self._sample_rate = sample_rate
        self._lock = threading.Lock()
        self._state = PlaybackState.STOPPED
        self._handle: PlaybackHandle | None = None
        self._token = 0
        self._closed = False

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    def __enter__(self) -> PlaybackController:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def toggle(self, recipe: Recipe) -> PlaybackState:
        if self._closed:
            raise PlaybackError("Playback controller is closed.")
        if self._state is PlaybackState.PLAYING:
            self.stop()
            return self._state

        self.stop()
        with self._lock:
            self._state = PlaybackState.LOADING
            self._token += 1
            token = self._token

        try:
            try:
                audio = self._client.request_narration_audio(narration_text(recipe))
            except Exception as e:
                logger.warning("Narration request failed for %r: %s", recipe.title, e)
                audio = None
            if audio:
                buffer = decode_pcm(decode_base64(audio), sample_rate=self._sample_rate, num_channels=1)
                self._start(buffer, token)
            else:
                logger.info("No narration audio returned for %r", recipe.title)
        except (DecodeError, PlaybackError) as e:
            logger.warning("Narration playback failed for %r: %s", recipe.title, e)
        except Exception:
            logger.exception("Unexpected error starting narration for %r", recipe.title)
        finally:
            with self._lock:
                if self._token == token and self._state is PlaybackState.LOADING:
                    self._state = PlaybackState.STOPPED
        return self._state

    def _start(self, buffer: AudioBuffer, token: int) -> None:
        with self._lock:
            if self._token != token:
                return
            self._state = PlaybackState.PLAYING

        try:
            handle = self._sink.play(buffer, on_finished=lambda: self._on_finished(token))
        except Exception:
            with self._lock:
                if self._token == token:
                    self._state = PlaybackState.LOADING
            raise

        with self._lock:
            current = self._token == token
            if current:
                self._handle = handle
        if not current:
            handle.stop()
        logger.debug("Playing %.1fs of narration", buffer.duration)

    def _on_finished(self, token: int) -> None:
        with self._lock:
            if self._token == token and self._state is PlaybackState.PLAYING:
                self._state = PlaybackState.STOPPED

    def stop(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
            self._token += 1
            self._state = PlaybackState.STOPPED
        if handle is not None:
            try:
                handle.stop()
            except Exception as e:
                logger.warning("Error while stopping playback: %s", e)

    def close(self) -> None:
        self.stop()
        self._closed = True
