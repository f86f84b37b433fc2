"""Background music resolution: user file, generated by the sound provider, or procedural."""

import io
import logging
import os

import numpy as np
from pydub import AudioSegment

from episode_producer.constants import MUSIC_LOOP_SECONDS, MUSIC_SYNTH_SECONDS, OUTPUT_BITRATE, SAMPLE_RATE
from episode_producer.errors import SynthesisError

logger = logging.getLogger(__name__)

GENRE_MUSIC = {
    "drama": "soft emotional ambient piano and strings background music, subtle and atmospheric",
    "thriller": "tense suspenseful ambient background music with subtle bass, dark atmospheric",
    "comedy": "light cheerful ambient background music, upbeat but not overpowering",
    "horror": "eerie dark ambient background music, haunting and atmospheric",
    "romance": "gentle romantic ambient background music, soft piano and strings",
    "scifi": "futuristic ambient electronic background music, sci-fi atmosphere",
    "fantasy": "mystical ambient orchestral background music, magical and ethereal",
    "mystery": "mysterious ambient background music, subtle tension and intrigue",
    "action": "dynamic ambient background music, energetic but not overwhelming",
}
DEFAULT_MUSIC = "soft ambient background music, subtle and atmospheric"


def music_prompt(genre: str | None, soundscape: str | None = None) -> str:
    """Prompt for the sound provider; a custom soundscape wins over the genre table."""
    if soundscape:
        return f"ambient background music: {soundscape}"
    return GENRE_MUSIC.get((genre or "").lower(), DEFAULT_MUSIC)


def generate_procedural_music(seconds: int = MUSIC_LOOP_SECONDS) -> bytes:
    """Generate a procedural ambient drone using numpy sine waves.

    A-minor chord (A2 + C3 + E3) with slow amplitude modulation
    for an atmospheric, ambient feel. Returned as mp3 bytes.
    """
    t = np.linspace(0, seconds, int(SAMPLE_RATE * seconds), endpoint=False)

    # A-minor chord: A2 (110 Hz), C3 (130.81 Hz), E3 (164.81 Hz)
    a2 = np.sin(2 * np.pi * 110.0 * t) * 0.3
    c3 = np.sin(2 * np.pi * 130.81 * t) * 0.25
    e3 = np.sin(2 * np.pi * 164.81 * t) * 0.2

    # Slow amplitude modulation for movement
    mod = 0.7 + 0.3 * np.sin(2 * np.pi * 0.1 * t)
    combined = (a2 + c3 + e3) * mod

    # Normalize to int16 range
    peak = np.max(np.abs(combined))
    if peak > 0:
        combined = combined / peak * 0.8
    samples = (combined * 32767).astype(np.int16)

    audio = AudioSegment(
        data=samples.tobytes(),
        sample_width=2,
        frame_rate=SAMPLE_RATE,
        channels=1,
    )
    buf = io.BytesIO()
    audio.export(buf, format="mp3", bitrate=OUTPUT_BITRATE)
    return buf.getvalue()


def resolve_music(
    sound_provider=None,
    genre: str | None = None,
    soundscape: str | None = None,
    music_file: str | None = None,
) -> tuple[bytes, str]:
    """Resolve music source and return (mp3 bytes, source string).

    Priority:
    1. music_file argument (user-provided)
    2. Sound provider, prompted from genre/soundscape
    3. Procedural numpy fallback
    """
    if music_file and os.path.exists(music_file):
        with open(music_file, "rb") as f:
            data = f.read()
        if data:
            return data, f"user:{os.path.basename(music_file)}"
        logger.warning("Music file is empty: %s", music_file)

    if sound_provider is not None:
        prompt = music_prompt(genre, soundscape)
        logger.info("Generating background music: %s", prompt[:60])
        try:
            return sound_provider.synth(prompt, MUSIC_SYNTH_SECONDS), "generated"
        except SynthesisError as e:
            logger.warning("Background music failed, using procedural: %s", e)

    return generate_procedural_music(), "procedural"
