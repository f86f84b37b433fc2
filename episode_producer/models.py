"""Data models for episode production."""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import ClassVar, Union

from episode_producer.constants import (
    DEFAULT_EMOTION,
    ENDING_SILENCE,
)


class SceneType(str, Enum):
    NORMAL = "normal"
    TENSE = "tense"
    HOSPITAL = "hospital"
    PSYCHOACOUSTIC = "psychoacoustic"
    REVELATION = "revelation"


class MotifType(str, Enum):
    OUROBOROS = "ouroboros"
    HEARTBEAT = "heartbeat"
    GLITCH = "glitch"


class SfxRole(str, Enum):
    BED = "bed"
    SPOT = "spot"


@dataclass(frozen=True)
class DialogueSegment:
    kind: ClassVar[str] = "dialogue"

    speaker: str
    text: str
    emotion: str = DEFAULT_EMOTION
    scene_type: SceneType = SceneType.NORMAL


@dataclass(frozen=True)
class SfxSegment:
    kind: ClassVar[str] = "sfx"

    text: str
    sfx_prompt: str
    scene_type: SceneType = SceneType.NORMAL


@dataclass(frozen=True)
class MotifSegment:
    kind: ClassVar[str] = "motif"

    text: str
    sfx_prompt: str
    motif_type: MotifType
    scene_type: SceneType = SceneType.NORMAL


@dataclass(frozen=True)
class SilenceSegment:
    kind: ClassVar[str] = "silence"

    text: str          # reason: scene_transition, explicit_silence, dramatic_pause, ...
    duration: float    # seconds; 0 only for the ending_lock marker


Segment = Union[DialogueSegment, SfxSegment, MotifSegment, SilenceSegment]

_SEGMENT_TYPES = {
    cls.kind: cls for cls in (DialogueSegment, SfxSegment, MotifSegment, SilenceSegment)
}


def segment_to_dict(segment: Segment) -> dict:
    """Serialize a segment for JSON artifacts, tagged by kind."""
    data = {"kind": segment.kind}
    for f in fields(segment):
        value = getattr(segment, f.name)
        data[f.name] = value.value if isinstance(value, Enum) else value
    return data


def segment_from_dict(data: dict) -> Segment:
    """Rebuild a segment from segment_to_dict() output.

    Raises ValueError for an unknown kind.
    """
    kind = data.get("kind")
    cls = _SEGMENT_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown segment kind: {kind!r}")
    kwargs = {f.name: data[f.name] for f in fields(cls) if f.name in data}
    if "scene_type" in kwargs:
        kwargs["scene_type"] = SceneType(kwargs["scene_type"])
    if "motif_type" in kwargs:
        kwargs["motif_type"] = MotifType(kwargs["motif_type"])
    return cls(**kwargs)


@dataclass
class RenderedSegment:
    segment: Segment
    audio: bytes = b""              # empty for silence; the mixer synthesizes it
    role: SfxRole | None = None     # sfx/motif only
    source_index: int | None = None  # script segment this came from


@dataclass
class TimelineEvent:
    """An SFX or motif placed on the shared timeline."""

    index: int
    audio: bytes
    start_seconds: float
    role: SfxRole
    prompt: str = ""
    motif_type: MotifType | None = None


@dataclass(frozen=True)
class MixOptions:
    dialogue_volume: float = 1.0
    sfx_volume: float = 0.6
    music_volume: float = 0.08
    fade_in_sec: float = 1.5
    fade_out_sec: float = 2.0
    normalize: bool = True
    end_with_silence: bool = True
    ending_silence_sec: float = ENDING_SILENCE

    @classmethod
    def from_dict(cls, data: dict, base: "MixOptions | None" = None) -> "MixOptions":
        """Build options from a direction file, ignoring unknown keys.

        Keys missing from data keep their value from base (or the defaults).
        """
        known = {f.name for f in fields(cls)}
        return replace(base or cls(), **{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class VoiceSettings:
    stability: float
    similarity_boost: float
    style: float

    def as_payload(self) -> dict:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
        }


EMOTION_SETTINGS = {
    "excited": VoiceSettings(0.25, 0.75, 0.7),
    "nervous": VoiceSettings(0.3, 0.7, 0.6),
    "calm": VoiceSettings(0.5, 0.8, 0.3),
    "serious": VoiceSettings(0.4, 0.85, 0.5),
    "angry": VoiceSettings(0.2, 0.8, 0.8),
    "sad": VoiceSettings(0.45, 0.85, 0.4),
    "weary": VoiceSettings(0.45, 0.8, 0.4),
    "patient": VoiceSettings(0.5, 0.85, 0.3),
    "urgent": VoiceSettings(0.25, 0.75, 0.65),
    "tight": VoiceSettings(0.3, 0.8, 0.6),
    "soft": VoiceSettings(0.55, 0.85, 0.25),
    "firm": VoiceSettings(0.4, 0.85, 0.55),
    "whispered": VoiceSettings(0.6, 0.9, 0.2),
    "grim": VoiceSettings(0.4, 0.85, 0.5),
    "hoarse": VoiceSettings(0.35, 0.75, 0.4),
    "robotic": VoiceSettings(0.7, 0.5, 0.1),
    "cold": VoiceSettings(0.5, 0.8, 0.3),
    "terrified": VoiceSettings(0.2, 0.7, 0.7),
    "disbelieving": VoiceSettings(0.3, 0.75, 0.6),
    "confused": VoiceSettings(0.35, 0.75, 0.5),
    "default": VoiceSettings(0.35, 0.8, 0.5),
}


def voice_settings_for(emotion: str | None) -> VoiceSettings:
    """Look up synthesis settings for an emotion, falling back to default."""
    return EMOTION_SETTINGS.get((emotion or "").lower(), EMOTION_SETTINGS["default"])


@dataclass
class MixReport:
    dialogue: int = 0
    silences: int = 0
    spots: int = 0
    beds: int = 0
    motifs: int = 0
    skipped: list[int] = field(default_factory=list)
    backbone_seconds: float = 0.0
