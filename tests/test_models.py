"""Tests for models module."""

import dataclasses

import pytest

from episode_producer.models import (
    DialogueSegment,
    MixOptions,
    MotifSegment,
    MotifType,
    SceneType,
    SfxSegment,
    SilenceSegment,
    VoiceSettings,
    segment_from_dict,
    segment_to_dict,
    voice_settings_for,
)


# --- Segments ---

def test_segment_kinds():
    assert DialogueSegment(speaker="A", text="b").kind == "dialogue"
    assert SfxSegment(text="rain", sfx_prompt="rain").kind == "sfx"
    assert SilenceSegment(text="explicit_silence", duration=1.0).kind == "silence"


def test_segments_are_frozen():
    seg = DialogueSegment(speaker="PRIYA", text="Hi.")
    with pytest.raises(dataclasses.FrozenInstanceError):
        seg.text = "Bye."


def test_segment_to_dict_tags_kind_and_flattens_enums():
    seg = MotifSegment(text="pulse", sfx_prompt="pulse", motif_type=MotifType.HEARTBEAT,
                       scene_type=SceneType.HOSPITAL)
    assert segment_to_dict(seg) == {
        "kind": "motif",
        "text": "pulse",
        "sfx_prompt": "pulse",
        "motif_type": "heartbeat",
        "scene_type": "hospital",
    }


@pytest.mark.parametrize("seg", [
    DialogueSegment(speaker="ARJUN", text="Priya?", emotion="tight", scene_type=SceneType.TENSE),
    MotifSegment(text="glitch", sfx_prompt="glitch", motif_type=MotifType.GLITCH),
    SilenceSegment(text="scene_transition", duration=1.0),
])
def test_segment_from_dict_restores_segment(seg):
    assert segment_from_dict(segment_to_dict(seg)) == seg


def test_segment_from_dict_defaults_missing_fields():
    seg = segment_from_dict({"kind": "dialogue", "speaker": "NARRATOR", "text": "Hi."})
    assert seg.emotion == "default"
    assert seg.scene_type is SceneType.NORMAL


def test_segment_from_dict_unknown_kind():
    with pytest.raises(ValueError, match="music"):
        segment_from_dict({"kind": "music", "text": "x"})


# --- Options ---

def test_mix_options_defaults():
    opts = MixOptions()
    assert opts.normalize is True
    assert opts.end_with_silence is True
    assert opts.ending_silence_sec == 3.0


def test_mix_options_from_dict_ignores_unknown_keys():
    opts = MixOptions.from_dict({"sfx_volume": 0.9, "title": "Pilot"})
    assert opts.sfx_volume == 0.9
    assert opts.music_volume == MixOptions().music_volume


def test_mix_options_from_dict_keeps_base_values():
    base = MixOptions(sfx_volume=0.85, fade_out_sec=2.5)
    opts = MixOptions.from_dict({"normalize": False}, base=base)
    assert opts == MixOptions(sfx_volume=0.85, fade_out_sec=2.5, normalize=False)


# --- Voice settings ---

def test_voice_settings_for_known_emotion():
    assert voice_settings_for("Whispered") == VoiceSettings(0.6, 0.9, 0.2)


def test_voice_settings_for_unknown_emotion(default_settings):
    assert voice_settings_for("giddy") == default_settings
    assert voice_settings_for(None) == default_settings


def test_voice_settings_payload():
    assert VoiceSettings(0.3, 0.8, 0.6).as_payload() == {
        "stability": 0.3, "similarity_boost": 0.8, "style": 0.6,
    }
