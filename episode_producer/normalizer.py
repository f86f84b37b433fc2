"""Rewrite generated scripts into audio-first scene flow before parsing."""

import logging
import re

from episode_producer.constants import SFX_CUE_MAX_CHARS, SPEAKER_MAX_CHARS
from episode_producer.models import SfxRole
from episode_producer.sfx import classify_role, derive_ambience_bed

logger = logging.getLogger(__name__)

SLUGLINE_RE = re.compile(r"^(INT\.|EXT\.|INT/EXT\.|EXT/INT\.)", re.IGNORECASE)
CAMERA_RE = re.compile(r"^(CUT TO:|SMASH CUT:|DISSOLVE TO:|FADE IN:|FADE OUT:)", re.IGNORECASE)
SOUND_CUE_RE = re.compile(r"^\(?\s*(?:SOUND|SFX|MUSIC):\s*(.+?)\s*\)?$", re.IGNORECASE)
SILENCE_CUE_RE = re.compile(r"^\(?\s*SILENCE:\s*([\d.]+)\s*(?:seconds?|s)?\s*\)?$", re.IGNORECASE)
SPEAKER_RE = re.compile(r"^([A-Z][A-Z0-9\s.']+)(?:\s*\[([^\]]+)\])?$")
PARENTHETICAL_RE = re.compile(r"^\([^)]+\)$")

_VISUAL_PREFIXES = ("int ", "ext ", "in the ", "inside the ", "outside the ")
_VISUAL_MARKERS = ("we see ", "camera", "shot")


def is_speaker_header(line: str) -> bool:
    match = SPEAKER_RE.match(line)
    return bool(match) and len(match.group(1)) <= SPEAKER_MAX_CHARS and ":" not in match.group(1)


def looks_like_visual_description(line: str) -> bool:
    """Screen-direction prose that should be heard as ambience, not narration."""
    lower = line.lower()
    return lower.startswith(_VISUAL_PREFIXES) or any(m in lower for m in _VISUAL_MARKERS)


def _bed_cue(hint: str) -> str:
    return f"(SOUND: {derive_ambience_bed(hint)})"


def normalize_script(script: str) -> str:
    """Enforce scene structure and strip visual-only directions.

    - Sluglines and camera directions become a scene break (---) opened by
      an ambience bed cue.
    - Every scene opens with exactly one bed cue; an explicit ambience cue
      at the top of a scene serves as that bed.
    - SOUND/SFX/MUSIC cues are kept (whitespace-collapsed, truncated);
      SILENCE cues are kept as written.
    - Non-sound parentheticals are dropped.
    - Visual-description lines become ambience bed cues.
    """
    if not script:
        return ""

    text = script.replace("\r\n", "\n").replace("\t", " ")
    text = re.sub(r"\n{3,}", "\n\n", text)

    out = []
    scene_open = False
    scene_has_bed = False

    def start_scene():
        nonlocal scene_open, scene_has_bed
        if not out or out[-1] != "---":
            out.append("---")
        scene_open = True
        scene_has_bed = False

    def open_scene(hint):
        nonlocal scene_has_bed
        if not scene_open:
            start_scene()
        if not scene_has_bed:
            out.append(_bed_cue(hint))
            scene_has_bed = True

    for raw_line in text.split("\n"):
        # Bold or heading markers around whole lines
        line = raw_line.strip().strip("*#").strip()
        if not line:
            continue

        if SLUGLINE_RE.match(line) or CAMERA_RE.match(line):
            start_scene()
            open_scene(line)
            continue

        if re.fullmatch(r"-{3,}", line) or line.upper().startswith("(SCENE"):
            start_scene()
            continue

        if SILENCE_CUE_RE.match(line):
            out.append(line)
            continue

        cue = SOUND_CUE_RE.match(line)
        if cue:
            cleaned = re.sub(r"\s+", " ", cue.group(1)).strip()[:SFX_CUE_MAX_CHARS]
            if not scene_open:
                start_scene()
            if classify_role(cleaned) is SfxRole.BED and not scene_has_bed:
                scene_has_bed = True
            else:
                open_scene(cleaned)
            out.append(f"(SOUND: {cleaned})")
            continue

        if is_speaker_header(line):
            open_scene(line)
            out.append(line)
            continue

        if PARENTHETICAL_RE.match(line):
            if "sound" in line.lower():
                open_scene(line)
                out.append(line)
            else:
                logger.debug("Dropped stage direction: %s", line)
            continue

        if looks_like_visual_description(line):
            if scene_has_bed:
                logger.debug("Dropped visual description: %s", line)
            open_scene(line[:120])
            continue

        open_scene(line)
        out.append(line)

    return re.sub(r"\n{3,}", "\n\n", "\n".join(out))
