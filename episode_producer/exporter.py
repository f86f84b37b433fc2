"""Provenance manifest and storage keys for finished episodes."""

import time
from dataclasses import asdict
from datetime import datetime, timezone

from episode_producer.constants import VERSION
from episode_producer.models import MixOptions, MixReport, Segment
from episode_producer.parser import estimate_duration, summarize


def episode_key(series: str, episode: str, timestamp_ms: int | None = None) -> str:
    """Storage key for an episode upload: episodes/<series>/<episode>_<ms>.mp3"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"episodes/{series}/{episode}_{timestamp_ms}.mp3"


def manifest_key(audio_key: str) -> str:
    base = audio_key[:-4] if audio_key.endswith(".mp3") else audio_key
    return base + ".json"


def build_manifest(
    title: str,
    segments: list[Segment],
    voices: dict[str, str],
    options: MixOptions,
    report: MixReport | None = None,
    music_source: str | None = None,
    failed: list[int] | None = None,
) -> dict:
    """Describe how an episode was produced.

    Stats include the display-only word-count estimate alongside the
    measured dialogue-track length from the mix report.
    """
    stats = {
        "segments": summarize(segments),
        "estimated_seconds": estimate_duration(segments),
        "failed_segments": list(failed or []),
    }
    if report is not None:
        stats.update({
            "dialogue_track_seconds": round(report.backbone_seconds, 1),
            "spots": report.spots,
            "beds": report.beds,
            "motifs": report.motifs,
            "skipped": list(report.skipped),
        })

    return {
        "title": title,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "voices": dict(voices),
        "music_source": music_source,
        "settings": asdict(options),
        "stats": stats,
    }
