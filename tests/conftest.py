"""Shared fixtures for episode producer tests."""

import io
import os
import re

import numpy as np
import pytest
from pydub import AudioSegment

from episode_producer.errors import MixingStageError, SynthesisError
from episode_producer.models import VoiceSettings

SAMPLE_RATE = 44100


def tone(seconds, freq=440.0):
    """WAV bytes of a sine tone (or silence when freq is None)."""
    n = int(SAMPLE_RATE * seconds)
    if freq is None:
        samples = np.zeros(n, dtype=np.int16)
    else:
        t = np.linspace(0, seconds, n, endpoint=False)
        samples = (np.sin(2 * np.pi * freq * t) * 8000).astype(np.int16)
    audio = AudioSegment(data=samples.tobytes(), sample_width=2, frame_rate=SAMPLE_RATE, channels=1)
    return _wav(audio)


def _wav(audio):
    buf = io.BytesIO()
    audio.export(buf, format="wav")
    return buf.getvalue()


def _load(data):
    return AudioSegment.from_file(io.BytesIO(data), format="wav")


class FakeEngine:
    """AudioEngine stand-in built on pydub WAV, so tests need no ffmpeg.

    It does not filter audio; it only reproduces each stage's effect on
    duration: concat graphs join inputs, the SFX bus becomes silence of the
    trimmed length, every other graph passes input 0 through. Every call
    is recorded.
    """

    def __init__(self, fail_stage=None):
        self.fail_stage = fail_stage
        self.calls = []
        self.workdirs = set()

    def stages(self):
        return [stage for stage, _, _ in self.calls]

    def graphs(self, stage):
        return [graph for s, graph, _ in self.calls if s == stage]

    def apply(self, graph, inputs, workdir, *, stage):
        assert os.path.isdir(workdir)
        self.calls.append((stage, graph, len(inputs)))
        self.workdirs.add(workdir)
        if stage == self.fail_stage:
            raise MixingStageError(stage, "simulated ffmpeg failure")

        if "concat=" in graph:
            result = AudioSegment.empty()
            for data in inputs:
                result += _load(data)
            return _wav(result)
        if "duration=longest" in graph:
            target = float(re.search(r"atrim=0:([\d.]+)\[out\]$", graph).group(1))
            return _wav(AudioSegment.silent(duration=int(round(target * 1000)), frame_rate=SAMPLE_RATE))
        return inputs[0]

    def duration(self, data):
        return len(_load(data)) / 1000.0

    def silence(self, seconds):
        return _wav(AudioSegment.silent(duration=int(round(seconds * 1000)), frame_rate=SAMPLE_RATE))


class FakeSpeech:
    """SpeechProvider returning one second of tone per call."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    def synth(self, text, voice_id, settings):
        self.calls.append((text, voice_id, settings))
        if text in self.fail_on:
            raise SynthesisError("speech", "quota exceeded")
        return tone(1.0)


class FakeSound:
    """SoundProvider returning tone of the requested length (capped at 2s)."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def synth(self, prompt, duration_seconds):
        self.calls.append((prompt, duration_seconds))
        if self.fail:
            raise SynthesisError("sound", "HTTP 500")
        return tone(min(duration_seconds, 2), freq=220.0)


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def default_settings():
    return VoiceSettings(0.35, 0.8, 0.5)


@pytest.fixture
def sample_script():
    """A short generated script with sluglines, cues, emotions and a silence."""
    return "\n".join([
        "**INT. HOSPITAL ROOM - NIGHT**",
        "",
        "(SOUND: heart monitor beeping steadily)",
        "",
        "NARRATOR",
        "The room was quiet.",
        "",
        "ARJUN [tight, whispered]",
        "Priya? Can you hear me?",
        "",
        "(SILENCE: 2.5 seconds)",
        "",
        "PRIYA [weary]",
        "I hear you. (she coughs) Always.",
        "",
        "(SOUND: phone vibrating on the table)",
    ])
