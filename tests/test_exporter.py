"""Tests for exporter module (storage keys and manifest)."""

import json
from unittest.mock import patch

from episode_producer.constants import VERSION
from episode_producer.exporter import build_manifest, episode_key, manifest_key
from episode_producer.models import MixOptions, MixReport
from episode_producer.parser import parse_script


# --- Keys ---

def test_episode_key_layout():
    assert episode_key("night-shift", "ep01", 1700000000000) == "episodes/night-shift/ep01_1700000000000.mp3"


@patch("episode_producer.exporter.time.time", return_value=1700000000.5)
def test_episode_key_uses_current_time(mock_time):
    assert episode_key("s", "e") == "episodes/s/e_1700000000500.mp3"


def test_manifest_key():
    assert manifest_key("episodes/s/e_1.mp3") == "episodes/s/e_1.json"
    assert manifest_key("episodes/s/e_1") == "episodes/s/e_1.json"


# --- Manifest ---

def test_manifest_has_required_fields():
    segments = parse_script("NARRATOR\nHello there.\n(SOUND: door creak)")
    manifest = build_manifest("Pilot", segments, {"NARRATOR": "v1"}, MixOptions())
    assert manifest["title"] == "Pilot"
    assert manifest["producer_version"] == VERSION
    assert manifest["voices"] == {"NARRATOR": "v1"}
    assert manifest["music_source"] is None
    assert manifest["settings"]["sfx_volume"] == 0.6
    assert manifest["stats"]["segments"] == {"dialogue": 1, "sfx": 1, "motif": 0, "silence": 1}
    assert "generated_at" in manifest
    assert "dialogue_track_seconds" not in manifest["stats"]


def test_manifest_includes_mix_report():
    report = MixReport(dialogue=2, spots=1, beds=1, skipped=[3], backbone_seconds=12.345)
    manifest = build_manifest("Pilot", [], {}, MixOptions(), report=report,
                              music_source="procedural", failed=[2])
    stats = manifest["stats"]
    assert stats["dialogue_track_seconds"] == 12.3
    assert stats["skipped"] == [3]
    assert stats["failed_segments"] == [2]
    assert manifest["music_source"] == "procedural"


def test_manifest_is_json_serializable():
    segments = parse_script("ARJUN [tight]\nPriya?")
    manifest = build_manifest("Pilot", segments, {"ARJUN": "v2"}, MixOptions(), report=MixReport())
    assert json.loads(json.dumps(manifest))["title"] == "Pilot"
