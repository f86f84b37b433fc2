"""Tests for music module."""

from unittest.mock import MagicMock, patch

import pytest
from pydub import AudioSegment

from conftest import FakeSound
from episode_producer.constants import MUSIC_LOOP_SECONDS
from episode_producer.music import (
    DEFAULT_MUSIC,
    GENRE_MUSIC,
    generate_procedural_music,
    music_prompt,
    resolve_music,
)


def _capture_export():
    """Patch AudioSegment.export to record the audio instead of encoding mp3."""
    exported = []

    def export(self, out_f=None, format="mp3", **kwargs):
        exported.append(self)
        out_f.write(b"mp3:" + format.encode())
        return out_f

    return exported, patch.object(AudioSegment, "export", autospec=True, side_effect=export)


# --- Prompts ---

def test_music_prompt_by_genre():
    assert music_prompt("Thriller") == GENRE_MUSIC["thriller"]


def test_music_prompt_soundscape_wins():
    assert music_prompt("thriller", "rain on tin roofs") == "ambient background music: rain on tin roofs"


def test_music_prompt_unknown_genre():
    assert music_prompt("polka") == DEFAULT_MUSIC
    assert music_prompt(None) == DEFAULT_MUSIC


# --- Procedural music ---

def test_procedural_music_duration_and_level():
    """Numpy drone runs MUSIC_LOOP_SECONDS and is not silent."""
    exported, patcher = _capture_export()
    with patcher:
        data = generate_procedural_music()
    assert data == b"mp3:mp3"
    audio = exported[0]
    assert abs(len(audio) - MUSIC_LOOP_SECONDS * 1000) < 100
    assert audio.rms > 0


# --- Resolution order ---

def test_user_file_wins(tmp_path):
    music_file = tmp_path / "theme.mp3"
    music_file.write_bytes(b"user-music")
    sound = FakeSound()
    data, source = resolve_music(sound, "drama", music_file=str(music_file))
    assert data == b"user-music"
    assert source == "user:theme.mp3"
    assert sound.calls == []


def test_generated_when_no_file(tmp_path):
    sound = FakeSound()
    data, source = resolve_music(sound, "horror", music_file=str(tmp_path / "missing.mp3"))
    assert source == "generated"
    assert data
    assert sound.calls == [(GENRE_MUSIC["horror"], 22)]


@patch("episode_producer.music.generate_procedural_music", return_value=b"drone")
def test_provider_failure_falls_back_to_procedural(mock_proc):
    data, source = resolve_music(FakeSound(fail=True), "drama")
    assert (data, source) == (b"drone", "procedural")


@patch("episode_producer.music.generate_procedural_music", return_value=b"drone")
def test_no_provider_is_procedural(mock_proc, tmp_path):
    empty = tmp_path / "empty.mp3"
    empty.write_bytes(b"")
    assert resolve_music(None, music_file=str(empty)) == (b"drone", "procedural")


def test_provider_errors_other_than_synthesis_propagate():
    sound = MagicMock()
    sound.synth.side_effect = RuntimeError("bug")
    with pytest.raises(RuntimeError, match="bug"):
        resolve_music(sound, "drama")
