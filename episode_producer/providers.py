"""External collaborators: speech, sound and storage providers.

The pipeline only depends on the three protocols below; the concrete
classes wrap ElevenLabs (HTTP), edge-tts and the local filesystem.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Protocol

import edge_tts
import requests

from episode_producer.constants import (
    ELEVENLABS_API_URL,
    ELEVENLABS_TTS_MODEL,
    HTTP_TIMEOUT,
    SFX_MAX_SECONDS,
    SFX_PROMPT_INFLUENCE,
    TTS_RATE,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
)
from episode_producer.errors import ProducerError, SynthesisError
from episode_producer.models import VoiceSettings

logger = logging.getLogger(__name__)


class SpeechProvider(Protocol):
    def synth(self, text: str, voice_id: str, settings: VoiceSettings) -> bytes: ...


class SoundProvider(Protocol):
    def synth(self, prompt: str, duration_seconds: float) -> bytes: ...


class BlobStore(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> str: ...

    def delete(self, key: str) -> None: ...


class ElevenLabsProvider:
    """Speech and sound generation over the ElevenLabs REST API.

    One instance serves as both SpeechProvider and SoundProvider; use
    speech() / sound() to pass it where a single-method provider is wanted.
    """

    def __init__(self, api_key: str | None = None, base_url: str = ELEVENLABS_API_URL,
                 timeout: float = HTTP_TIMEOUT, session: requests.Session | None = None):
        self.api_key = api_key or os.environ.get("ELEVENLABS_API_KEY")
        if not self.api_key:
            raise ProducerError("ElevenLabs API key not configured (set ELEVENLABS_API_KEY)")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, kind: str, path: str, payload: dict) -> bytes:
        headers = {"xi-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            response = self.session.post(
                f"{self.base_url}{path}", json=payload, headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SynthesisError(kind, str(e)) from e
        if response.status_code != 200:
            logger.warning("ElevenLabs returned %s for %s: %s", response.status_code, path, response.text[:200])
            raise SynthesisError(kind, f"HTTP {response.status_code}: {response.text[:200]}")
        if not response.content:
            raise SynthesisError(kind, "empty response body")
        return response.content

    def synth_speech(self, text: str, voice_id: str, settings: VoiceSettings) -> bytes:
        return self._post("speech", f"/text-to-speech/{voice_id}", {
            "text": text,
            "model_id": ELEVENLABS_TTS_MODEL,
            "voice_settings": settings.as_payload(),
        })

    def synth_sound(self, prompt: str, duration_seconds: float) -> bytes:
        return self._post("sound", "/sound-generation", {
            "text": prompt,
            "duration_seconds": min(duration_seconds, SFX_MAX_SECONDS),
            "prompt_influence": SFX_PROMPT_INFLUENCE,
        })

    def speech(self) -> "SpeechProvider":
        return _Bound(self.synth_speech)

    def sound(self) -> "SoundProvider":
        return _Bound(self.synth_sound)


class _Bound:
    def __init__(self, fn):
        self.synth = fn


class EdgeSpeechProvider:
    """Free speech synthesis through edge-tts, with retry and backoff.

    Voice settings are ElevenLabs-specific and ignored here; pacing comes
    from the relative rate string (e.g. "-10%").
    """

    def __init__(self, rate: str = TTS_RATE, retries: int = TTS_RETRY_COUNT,
                 base_delay: float = TTS_RETRY_BASE_DELAY):
        self.rate = rate
        self.retries = retries
        self.base_delay = base_delay

    async def _collect(self, text: str, voice_id: str) -> bytes:
        communicate = edge_tts.Communicate(text, voice_id, rate=self.rate)
        chunks = []
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                chunks.append(chunk["data"])
        return b"".join(chunks)

    def synth(self, text: str, voice_id: str, settings: VoiceSettings | None = None) -> bytes:
        """Retries on network errors or empty output; raises SynthesisError when exhausted."""
        last_error = None
        for attempt in range(self.retries):
            try:
                data = asyncio.run(self._collect(text, voice_id))
                if data:
                    return data
                # 0-byte output counts as failure
                last_error = f"edge-tts produced no audio for: {text[:50]}..."
            except Exception as e:
                last_error = str(e) or type(e).__name__

            # Exponential backoff
            if attempt < self.retries - 1:
                delay = self.base_delay * (2 ** attempt)
                logger.debug("edge-tts attempt %d failed (%s), retrying in %.1fs", attempt + 1, last_error, delay)
                time.sleep(delay)

        raise SynthesisError("speech", last_error or "no attempts made")


class LocalBlobStore:
    """Filesystem-backed BlobStore; urls are file:// uris."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ProducerError(f"Key escapes store root: {key}")
        return path

    def put(self, key: str, data: bytes, content_type: str = "audio/mpeg") -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored %s (%s, %d bytes)", key, content_type, len(data))
        return path.as_uri()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
