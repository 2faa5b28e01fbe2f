"""Speech engine built on sounddevice capture and DashScope qwen3-asr-flash.

Microphone audio is endpointed locally by RMS level: an utterance starts at
the first chunk above ``speech_rms`` and ends after ``end_silence_ms`` of
quieter audio. Each utterance is encoded as WAV and sent to the model with
``stream=True``; streamed chunks become ``partial`` events and the last text
becomes the ``final`` event.
"""

from __future__ import annotations

import base64
import io
import os
import threading
import wave
from functools import partial
from queue import Empty, Full, Queue
from typing import Any, Callable, Optional

from loguru import logger

from errors import (
    ABORTED,
    INVALID_STATE,
    NETWORK,
    NO_SPEECH,
    NOT_ALLOWED_ERROR,
    NOT_FOUND_ERROR,
    SERVICE_NOT_ALLOWED,
    EngineError,
)
from models import RecognitionEvent, RecognitionKind

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

Post = Callable[[Callable[[], None]], None]

_DENIED_HINTS = ("denied", "permission", "not allowed", "unauthorized")


def _pcm_to_wav_base64(pcm: bytes, sample_rate: int = 16000, channels: int = 1, sample_width: int = 2) -> str:
    """Wrap raw PCM in a WAV container as a data URI accepted by the model."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:audio/wav;base64,{encoded}"


def _rms(chunk: bytes) -> float:
    if np is None or not chunk:
        return 0.0
    samples = np.frombuffer(chunk, dtype=np.int16).astype(np.float32)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples * samples)))


def _extract_text(chunk: Any) -> str:
    """Pull text from a dashscope streaming chunk (dict or response object)."""
    output = chunk.get("output") if isinstance(chunk, dict) else getattr(chunk, "output", None)
    if not output:
        return ""
    choices = output.get("choices") if isinstance(output, dict) else getattr(output, "choices", None)
    if not choices:
        return ""
    message = choices[0].get("message", {}) if isinstance(choices[0], dict) else getattr(choices[0], "message", {})
    content = message.get("content", []) if isinstance(message, dict) else getattr(message, "content", [])
    if not content:
        return ""
    value = content[0]
    if isinstance(value, dict):
        return str(value.get("text", ""))
    return ""


def _classify_capture_error(exc: Exception) -> EngineError:
    message = str(exc) or type(exc).__name__
    if any(hint in message.lower() for hint in _DENIED_HINTS):
        return EngineError(NOT_ALLOWED_ERROR, message)
    return EngineError(NOT_FOUND_ERROR, message)


class DashscopeSpeechEngine:
    def __init__(
        self,
        api_key: str,
        model: str = "qwen3-asr-flash",
        sample_rate: int = 16000,
        chunk_ms: int = 100,
        speech_rms: int = 500,
        end_silence_ms: int = 800,
        no_speech_timeout_ms: int = 8000,
        request_timeout_s: float = 10.0,
        post: Optional[Post] = None,
    ) -> None:
        self.continuous = False
        self.interim_results = False
        self.lang = "en-US"
        self.on_event: Optional[Callable[[RecognitionEvent], None]] = None

        self._api_key = api_key
        self._model = model
        self.sample_rate = sample_rate
        self.chunk_ms = chunk_ms
        self.speech_rms = speech_rms
        self.end_silence_ms = end_silence_ms
        self.no_speech_timeout_ms = no_speech_timeout_ms
        self._request_timeout_s = request_timeout_s
        self._post = post

        self._lock = threading.Lock()
        self._running = False
        self._stream: Any = None
        self._thread: Optional[threading.Thread] = None
        self._audio_queue: Queue[Optional[bytes]] = Queue(maxsize=200)
        self._aborted = threading.Event()
        self.dropped_chunks = 0

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # SpeechEngine
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._running:
                raise EngineError(INVALID_STATE, "Recognition has already started")
            if sd is None or np is None:
                raise EngineError(NOT_FOUND_ERROR, "No audio capture backend is installed")
            self._audio_queue = Queue(maxsize=200)
            self._aborted.clear()
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=1,
                    dtype="int16",
                    blocksize=blocksize,
                    callback=self._on_audio,
                )
                stream.start()
            except Exception as exc:
                error = _classify_capture_error(exc)
                logger.warning("Microphone capture failed ({}): {}", error.name, error.message)
                raise error from exc
            self._stream = stream
            self._running = True
            self._thread = threading.Thread(target=self._worker, daemon=True)
            self._thread.start()
        logger.debug("Speech engine started (continuous={}, interim={})", self.continuous, self.interim_results)
        self._emit(RecognitionEvent(kind=RecognitionKind.START.value))

    def stop(self) -> None:
        """Stop capturing; audio already heard is still transcribed."""
        with self._lock:
            if not self._running:
                raise EngineError(INVALID_STATE, "Recognition has not started")
            self._close_stream()
        self._put_sentinel()

    def abort(self) -> None:
        """Stop capturing and discard pending audio."""
        with self._lock:
            if not self._running:
                raise EngineError(INVALID_STATE, "Recognition has not started")
            self._aborted.set()
            self._close_stream()
        self._put_sentinel()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        try:
            self._audio_queue.put_nowait(payload)
        except Full:
            self.dropped_chunks += 1

    def _close_stream(self) -> None:
        self._running = False
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as exc:
            logger.debug("Closing input stream failed: {}", exc)

    def _put_sentinel(self) -> None:
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            pass

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _worker(self) -> None:
        utterance = bytearray()
        speaking = False
        silence_ms = 0
        waited_ms = 0

        while not self._aborted.is_set():
            try:
                chunk = self._audio_queue.get(timeout=0.2)
            except Empty:
                continue
            if chunk is None:
                break

            if _rms(chunk) >= self.speech_rms:
                speaking = True
                silence_ms = 0
            elif speaking:
                silence_ms += self.chunk_ms
            else:
                waited_ms += self.chunk_ms
                if waited_ms >= self.no_speech_timeout_ms:
                    self._emit_error(NO_SPEECH, "No speech detected")
                    break
                continue

            utterance.extend(chunk)
            if silence_ms >= self.end_silence_ms:
                ok = self._transcribe(bytes(utterance))
                utterance.clear()
                speaking = False
                silence_ms = 0
                waited_ms = 0
                if not ok or not self.continuous:
                    break

        if self._aborted.is_set():
            self._emit_error(ABORTED, "Recognition aborted")
        elif speaking and utterance:
            self._transcribe(bytes(utterance))

        with self._lock:
            self._close_stream()
        self._emit(RecognitionEvent(kind=RecognitionKind.END.value))

    def _transcribe(self, pcm: bytes) -> bool:
        """Send one utterance to the model; returns False after an error event."""
        if dashscope is None:
            self._emit_error(SERVICE_NOT_ALLOWED, "dashscope is not installed")
            return False

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            self._emit_error(SERVICE_NOT_ALLOWED, "No API key configured")
            return False

        wav_b64 = _pcm_to_wav_base64(pcm, self.sample_rate)
        latest_text = ""
        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": wav_b64}]},
                ],
                result_format="message",
                asr_options={"enable_itn": True, "language": self.lang.split("-")[0].lower()},
                stream=True,
                timeout=self._request_timeout_s,
            )
            for chunk in response:
                if self._aborted.is_set():
                    return False
                text = _extract_text(chunk)
                if text and text != latest_text:
                    latest_text = text
                    if self.interim_results:
                        self._emit(RecognitionEvent(kind=RecognitionKind.PARTIAL.value, text=text))
        except Exception as exc:
            self._emit(self._to_error_event(exc))
            return False

        if self._aborted.is_set():
            return False
        if not latest_text.strip():
            self._emit_error(NO_SPEECH, "Empty transcript")
            return False
        self._emit(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=latest_text, confidence=1.0))
        return True

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        """Map an SDK/network exception to an error event."""
        message = str(exc)
        low = message.lower()
        if "401" in low or "403" in low or "auth" in low or "api key" in low:
            code = SERVICE_NOT_ALLOWED
        else:
            code = NETWORK
        logger.warning("Transcription failed ({}): {}", code, message)
        return RecognitionEvent(kind=RecognitionKind.ERROR.value, code=code, message=message)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _emit_error(self, code: str, message: str) -> None:
        self._emit(RecognitionEvent(kind=RecognitionKind.ERROR.value, code=code, message=message))

    def _emit(self, event: RecognitionEvent) -> None:
        if self._post is not None:
            self._post(partial(self._deliver, event))
        else:
            self._deliver(event)

    def _deliver(self, event: RecognitionEvent) -> None:
        callback = self.on_event
        if callback is not None:
            callback(event)
