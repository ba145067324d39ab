"""Microphone recorder producing WAV artifacts."""

import io
import threading
from typing import Any, List, Optional

import numpy as np
import soundfile as sf

from .jobs.models import RecordedAudio


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode int16 PCM samples as a WAV file in memory."""
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format='WAV', subtype='PCM_16')
    return buf.getvalue()


class SoundDeviceRecorder:
    """
    Captures mono int16 audio from the default input device.

    ``sounddevice`` is imported when recording starts so that the rest of the
    client works on machines without PortAudio.
    """

    def __init__(self, sample_rate: int = 16000, channels: int = 1, chunk_ms: int = 100):
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._stream: Any = None
        self._chunks: List[np.ndarray] = []
        self._lock = threading.Lock()

    @property
    def recording(self) -> bool:
        return self._stream is not None

    def start(self):
        import sounddevice as sd

        with self._lock:
            if self._stream is not None:
                return
            self._chunks = []
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype='int16',
                blocksize=blocksize,
                callback=self._on_audio,
            )
            self._stream.start()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any):
        with self._lock:
            if self._stream is None:
                return
            self._chunks.append(np.array(indata, dtype=np.int16, copy=True))

    def _close_stream(self) -> List[np.ndarray]:
        with self._lock:
            stream, self._stream = self._stream, None
            chunks, self._chunks = self._chunks, []
        if stream is not None:
            stream.stop()
            stream.close()
        return chunks

    def stop(self) -> Optional[RecordedAudio]:
        """Stop capturing and return the recording (None if nothing was captured)."""
        chunks = self._close_stream()
        if not chunks:
            return None
        samples = np.concatenate(chunks)
        return RecordedAudio(
            wav_bytes=encode_wav(samples, self.sample_rate),
            duration_seconds=len(samples) / float(self.sample_rate),
            sample_rate=self.sample_rate,
        )

    def abort(self):
        """Stop capturing and discard buffered audio."""
        self._close_stream()
