"""Parse generated drama scripts into a typed timeline of segments.

Parsing is total: malformed or markdown-polluted input yields fewer
segments, never an exception.
"""

import logging
import re
from collections import Counter

from episode_producer.constants import (
    BEAT_SILENCE,
    DEFAULT_EMOTION,
    DEFAULT_SPEAKER,
    DRAMATIC_SILENCE,
    EXPLICIT_SILENCE_FALLBACK,
    MAX_SILENCE,
    SHOCK_SILENCE,
    WORDS_PER_MINUTE,
)
from episode_producer.models import (
    DialogueSegment,
    MotifSegment,
    MotifType,
    SceneType,
    Segment,
    SfxSegment,
    SilenceSegment,
)
from episode_producer.normalizer import (
    PARENTHETICAL_RE,
    SILENCE_CUE_RE,
    SOUND_CUE_RE,
    SPEAKER_RE,
    is_speaker_header,
)
from episode_producer.rules import any_of, first_match, matches

logger = logging.getLogger(__name__)

# (pattern, replacement) pairs applied in order
MARKDOWN_RULES = [
    (re.compile(r"\*\*\("), "("),
    (re.compile(r"\)\*\*"), ")"),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"^#+\s*", re.MULTILINE), ""),
    (re.compile(r"^-{3,}$", re.MULTILINE), "---"),
]

SCENE_BREAK_RE = re.compile(
    r"^(INT\.|EXT\.|INT/EXT\.|EXT/INT\.|CUT TO:|SMASH CUT:|DISSOLVE TO:|FADE IN:|FADE OUT:"
    r"|CLOSE UP|WIDE SHOT)",
    re.IGNORECASE,
)
BRACKETED_RE = re.compile(r"\[[^\]]+\]")
INLINE_DIRECTION_RE = re.compile(r"\((?!\s*(?:SOUND|SFX|MUSIC))[^)]*\)", re.IGNORECASE)

SILENCE_RULES = [
    (any_of("heavy silence", "absolute silence"), SHOCK_SILENCE),
    (any_of("silence", "pause"), DRAMATIC_SILENCE),
    (matches(r"\bbeat\b"), DRAMATIC_SILENCE),
    (any_of("cut to"), BEAT_SILENCE),
]

MOTIF_RULES = [
    (any_of("ouroboros", "symbol", "pattern"), MotifType.OUROBOROS),
    (any_of("heart monitor", "heartbeat", "pulse"), MotifType.HEARTBEAT),
    (any_of("glitch", "distort", "billboard"), MotifType.GLITCH),
]

SCENE_TYPE_RULES = [
    (any_of("hospital", "medical", "monitor", "icu"), SceneType.HOSPITAL),
    (any_of("revelation", "realize", "discover"), SceneType.REVELATION),
    (any_of("tense", "suspense", "thriller"), SceneType.TENSE),
]


def strip_markdown(script: str) -> str:
    for pattern, replacement in MARKDOWN_RULES:
        script = pattern.sub(replacement, script)
    return script


def detect_silence_cue(text: str) -> float | None:
    return first_match(SILENCE_RULES, text.lower())


def detect_motif(text: str) -> MotifType | None:
    return first_match(MOTIF_RULES, text.lower())


def detect_scene_type(text: str) -> SceneType:
    return first_match(SCENE_TYPE_RULES, text.lower(), SceneType.NORMAL)


def clean_dialogue_text(text: str) -> str:
    """Remove bracketed emotions and inline stage directions from spoken text."""
    text = BRACKETED_RE.sub("", text)
    text = INLINE_DIRECTION_RE.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def _parse_silence_seconds(raw: str) -> float:
    try:
        seconds = float(raw)
    except ValueError:
        seconds = 0.0
    if not seconds:
        seconds = EXPLICIT_SILENCE_FALLBACK
    return min(seconds, MAX_SILENCE)


class _ScriptState:
    """Running state while walking script lines."""

    def __init__(self):
        self.segments: list[Segment] = []
        self.speaker = ""
        self.emotion = DEFAULT_EMOTION
        self.buffer: list[str] = []
        self.scene_type = SceneType.NORMAL

    def flush(self):
        text = " ".join(self.buffer).strip()
        self.buffer = []
        if text:
            self.segments.append(DialogueSegment(
                speaker=self.speaker or DEFAULT_SPEAKER,
                text=text,
                emotion=self.emotion,
                scene_type=self.scene_type,
            ))


def _on_scene_break(state: _ScriptState, line: str, match) -> None:
    # Sluglines and camera directions are never spoken; back-to-back breaks share one transition
    if not state.buffer and (not state.segments or state.segments[-1].text == "scene_transition"):
        return
    state.flush()
    state.segments.append(SilenceSegment(text="scene_transition", duration=DRAMATIC_SILENCE))
    logger.debug("Scene transition: %s", line)


def _on_silence(state: _ScriptState, line: str, match) -> None:
    state.flush()
    state.segments.append(SilenceSegment(
        text="explicit_silence",
        duration=_parse_silence_seconds(match.group(1)),
    ))


def _emit_cue(state: _ScriptState, cue: str) -> None:
    state.flush()
    cue = cue.rstrip(")").strip()
    if not cue:
        return

    pause = detect_silence_cue(cue)
    if pause:
        state.segments.append(SilenceSegment(text="dramatic_pause", duration=pause))

    motif = detect_motif(cue)
    if motif:
        state.segments.append(MotifSegment(
            text=cue, sfx_prompt=cue, motif_type=motif, scene_type=state.scene_type,
        ))
        logger.debug("Motif %s: %s", motif.value, cue)
    else:
        state.segments.append(SfxSegment(text=cue, sfx_prompt=cue, scene_type=state.scene_type))

    scene_type = detect_scene_type(cue)
    if scene_type is not SceneType.NORMAL:
        state.scene_type = scene_type
        logger.debug("Scene type: %s", scene_type.value)


def _on_sound_cue(state: _ScriptState, line: str, match) -> None:
    _emit_cue(state, match.group(1))


def _on_speaker(state: _ScriptState, line: str, match) -> None:
    state.flush()
    state.speaker = match.group(1).strip()
    emotion = (match.group(2) or "").split(",")[0].strip().lower()
    state.emotion = emotion or DEFAULT_EMOTION


def _on_parenthetical(state: _ScriptState, line: str, match) -> None:
    inner = line[1:-1].strip()
    if "sound" in inner.lower():
        _emit_cue(state, inner)
    else:
        logger.debug("Dropped stage direction: %s", line)


def _on_text(state: _ScriptState, line: str, match) -> None:
    state.buffer.append(line)


def _match_scene_marker(line):
    return line == "---" or line.upper().startswith("(SCENE")


def _match_speaker(line):
    return SPEAKER_RE.match(line) if is_speaker_header(line) else None


# Ordered line rules: the first matcher returning a truthy value handles the line
LINE_RULES = [
    (SCENE_BREAK_RE.match, _on_scene_break),
    (_match_scene_marker, _on_scene_break),
    (SILENCE_CUE_RE.match, _on_silence),
    (SOUND_CUE_RE.match, _on_sound_cue),
    (_match_speaker, _on_speaker),
    (PARENTHETICAL_RE.match, _on_parenthetical),
    (bool, _on_text),
]


def parse_script(script: str) -> list[Segment]:
    """Parse raw script text into an ordered list of segments.

    Always ends with a zero-duration ending_lock silence marker; the mixer
    supplies the real ending silence.
    """
    state = _ScriptState()
    lines = strip_markdown(script or "").split("\n")

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        for matcher, handler in LINE_RULES:
            match = matcher(line)
            if match:
                handler(state, line, match)
                break

    state.flush()
    state.segments.append(SilenceSegment(text="ending_lock", duration=0.0))

    segments = [s for s in state.segments if s.text]
    logger.info("Parsed %d segments from %d lines: %s", len(segments), len(lines), summarize(segments))
    return segments


def summarize(segments: list[Segment]) -> dict[str, int]:
    """Count segments per kind."""
    counts = Counter(s.kind for s in segments)
    return {kind: counts.get(kind, 0) for kind in ("dialogue", "sfx", "motif", "silence")}


def estimate_duration(segments: list[Segment]) -> float:
    """Rough episode length in seconds from word counts and silences.

    Display-only: the mixer's measured durations are authoritative.
    """
    total = 0.0
    for seg in segments:
        if isinstance(seg, DialogueSegment):
            total += len(seg.text.split()) / WORDS_PER_MINUTE * 60
        elif isinstance(seg, SilenceSegment):
            total += seg.duration
    return round(total, 1)
