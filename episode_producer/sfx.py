"""Turn free-text sound cues into production-ready prompts.

Every rule table here is an ordered list of (predicate, result) pairs;
the first matching predicate wins.
"""

import re
from dataclasses import dataclass

from episode_producer.constants import SFX_PROMPT_MAX_CHARS
from episode_producer.models import SfxRole
from episode_producer.rules import all_of, any_of, first_match

BED_KEYWORDS = (
    "ambient", "ambience", "room tone", "murmur", "hum", "wind",
    "rain", "crowd", "newsroom", "street", "traffic",
)

PROMPT_RULES = [
    (
        all_of(any_of("car", "vehicle"), any_of("hit", "impact", "strike")),
        "dramatic car crash impact, metal crunching, glass shattering, body thud on ground, "
        "3 seconds, cinematic, visceral",
    ),
    (
        all_of(any_of("phone"), any_of("ring", "vibrat")),
        "smartphone vibrating on table, buzzing sound, 2 seconds, clear, realistic phone tone",
    ),
    (
        all_of(any_of("phone"), any_of("dial")),
        "phone dial tone, abrupt disconnect beep, realistic, 1.5 seconds",
    ),
    (
        all_of(any_of("phone"), any_of("call", "notification")),
        "smartphone notification ping, clear, modern, 1 second",
    ),
    (
        all_of(any_of("violent"), any_of("impact")),
        "violent collision impact, metal crashing, body hitting ground, glass breaking, "
        "4 seconds, dramatic, cinematic",
    ),
    (
        all_of(any_of("ground"), any_of("contact", "body", "hit")),
        "body hitting ground, dull thud, clothes rustling, gravel scraping, realistic, 2 seconds",
    ),
    (
        all_of(any_of("traffic"), any_of("muffle")),
        "traffic sounds becoming muffled, dreamlike, underwater effect, tension building, 3 seconds",
    ),
    (
        any_of("montage", "overlapping", "chaotic"),
        "distant TV news murmur, low intelligibility, room tone, subtle",
    ),
    (
        any_of("newsroom"),
        "newsroom ambience, ceiling fan hum, distant typing, cups clinking, "
        "soft background conversations, subtle",
    ),
    (
        any_of("hospital", "heart monitor", "icu"),
        "hospital ICU ambience, steady heart monitor beeping, distant PA announcement, "
        "subtle ventilator hum, calm",
    ),
    (
        any_of("street", "mumbai", "india"),
        "busy city street ambience, auto-rickshaw horns, distant vendor calling, "
        "traffic sounds, bustling city, subtle",
    ),
    (
        any_of("rain"),
        "light monsoon rain ambience, raindrops on window, distant thunder, subtle",
    ),
    (
        any_of("door"),
        "wooden door opening/closing, creaking hinges, latch click, realistic, 1.5 seconds",
    ),
    (
        any_of("footsteps"),
        "footsteps on concrete, approaching, leather shoes, echoing slightly, 3 seconds",
    ),
    (
        any_of("hit", "crash", "impact"),
        "sudden impact thud, dramatic, realistic, 2 seconds",
    ),
]

DURATION_RULES = [
    (any_of("car", "crash", "violent", "collision"), 4),
    (any_of("ground", "body", "thud"), 3),
    (all_of(any_of("phone"), any_of("vibrat", "ring")), 3),
    (any_of("dial", "disconnect"), 2),
    (any_of("knock", "slam", "click", "bang"), 2),
    (any_of("footsteps", "engine"), 4),
    (any_of("ambient", "rain", "crowd", "street", "newsroom", "hospital"), 8),
]
DEFAULT_SFX_SECONDS = 4

AMBIENCE_BED_RULES = [
    (
        any_of("hospital", "monitor", "icu"),
        "hospital room tone bed, distant monitor beeps, HVAC hum, subtle",
    ),
    (
        any_of("newsroom", "studio", "anchor"),
        "newsroom ambience bed, distant typing, soft murmurs, subtle",
    ),
    (any_of("rain", "storm"), "light rain ambience bed, distant traffic hush, subtle"),
    (any_of("street", "traffic"), "city street ambience bed, distant traffic, subtle"),
    (
        any_of("archive", "basement", "files"),
        "quiet room tone bed, faint fluorescent hum, subtle",
    ),
]
DEFAULT_AMBIENCE_BED = "room tone ambience bed, subtle"

# Predicates the mixer uses to pick a filtering strategy
is_news_like = any_of("news", "tv", "radio", "murmur", "montage")
is_impact = any_of("hit", "crash", "slam", "bang", "gun", "explosion")
is_phone = any_of("phone", "notification", "ring", "buzz")


@dataclass(frozen=True)
class ShapedPrompt:
    prompt: str
    role: SfxRole


def classify_role(text: str) -> SfxRole:
    """Bed for ambience-family cues, spot for everything else."""
    lower = (text or "").lower()
    return SfxRole.BED if any(k in lower for k in BED_KEYWORDS) else SfxRole.SPOT


def shape(raw_text: str) -> ShapedPrompt:
    """Rewrite a sound cue into a canonical prompt and classify its role.

    Unmatched cues pass through with whitespace collapsed. The result never
    exceeds SFX_PROMPT_MAX_CHARS.
    """
    raw = (raw_text or "").strip()
    lower = raw.lower()
    shaped = first_match(PROMPT_RULES, lower, raw)
    shaped = re.sub(r"\s+", " ", shaped).strip()[:SFX_PROMPT_MAX_CHARS]
    return ShapedPrompt(prompt=shaped, role=classify_role(raw))


def estimate_duration(prompt: str) -> int:
    """Seconds to request from the sound provider for a spot effect."""
    return first_match(DURATION_RULES, (prompt or "").lower(), DEFAULT_SFX_SECONDS)


def derive_ambience_bed(hint: str) -> str:
    """Pick a scene-opening ambience bed description from a context hint."""
    return first_match(AMBIENCE_BED_RULES, (hint or "").lower(), DEFAULT_AMBIENCE_BED)
