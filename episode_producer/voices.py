"""Speaker to voice assignment, stable within one episode."""

import json
import logging
import os
import re
from dataclasses import dataclass, field

from episode_producer.constants import DEFAULT_ACCENT, EDGE_NARRATOR_VOICE, NARRATOR_VOICE

logger = logging.getLogger(__name__)

# ElevenLabs voice ids grouped by accent/gender (hardcoded, avoids a network call at startup)
ELEVENLABS_POOLS = {
    "indian_male": ["pqHfZKP75CvOlQylNhV4", "nPczCjzI2devNBz1zQrb", "IKne3meq5aSn9XLyUdCD"],
    "indian_female": ["jBpfuIE2acCO8z3wKNLl", "XB0fDUnXU5powFXDhCwa"],
    "american_male": [
        "TX3LPaxmHKxFdv7VOQHJ",
        "TxGEqnHWrfWFTfGW9XjX",
        "VR6AewLTigWG4xSOukaG",
        "pNInz6obpgDQGcFmaJgB",
    ],
    "american_female": ["EXAVITQu4vr4xnSDxMaL", "21m00Tcm4TlvDq8ikWAM", "AZnzlk1XvdvUeBnXmlld"],
    "british_male": ["N2lVS1w4EtoT3dr4eOWO", "CYw3kZ02Hs0563khs1Fj"],
    "british_female": ["ThT5KcBeYPX3keUQqHPh", "z9fAnlkpzviPz146aGWa"],
    "robotic": ["SOYHLrjzK2X1ezoPC6cr"],
    "narrator": [NARRATOR_VOICE],
    "elderly_male": ["2EiwWnXFnvU5JabPnv8n"],
    "elderly_female": ["t0jbNlBVZ17f02VDIeMI"],
}

# Same layout with edge-tts neural voices
EDGE_POOLS = {
    "indian_male": ["en-IN-PrabhatNeural"],
    "indian_female": ["en-IN-NeerjaNeural"],
    "american_male": ["en-US-DavisNeural", "en-US-TonyNeural", "en-CA-LiamNeural"],
    "american_female": ["en-US-AriaNeural", "en-US-JennyNeural", "en-US-SaraNeural"],
    "british_male": ["en-GB-ThomasNeural", "en-AU-WilliamNeural"],
    "british_female": ["en-GB-SoniaNeural", "en-IE-EmilyNeural", "en-AU-NatashaNeural"],
    "robotic": ["en-CA-ClaraNeural"],
    "narrator": [EDGE_NARRATOR_VOICE],
    "elderly_male": ["en-GB-RyanNeural"],
    "elderly_female": ["en-GB-LibbyNeural"],
}

CATALOGS = {"elevenlabs": ELEVENLABS_POOLS, "edge": EDGE_POOLS}

FEMALE_KEYWORDS = (
    "NURSE", "WOMAN", "FEMALE", "GIRL", "MRS", "MS", "LADY", "MOTHER", "SISTER",
    "DAUGHTER", "WIFE", "QUEEN", "PRINCESS",
    "PRIYA", "ANANYA", "NEHA", "POOJA", "ANJALI", "KAVYA", "MEERA",
)
ROBOTIC_KEYWORDS = ("PHONE", "ROBOT", "COMPUTER", "AI")
ELDERLY_KEYWORDS = ("OLD", "ELDERLY", "GRANDPA", "GRANDMA")

# Short keywords only count as whole words: "MS" must not match "ADAMS", "AI" must not match "SAIRA"
_SHORT_KEYWORD_LEN = 3


def _tokens(name: str) -> list[str]:
    return [t for t in re.split(r"[\s.'\-]+", name) if t]


def _has_keyword(name: str, keywords) -> bool:
    tokens = _tokens(name)
    for kw in keywords:
        if len(kw) <= _SHORT_KEYWORD_LEN:
            if kw in tokens:
                return True
        elif kw in name:
            return True
    return False


def detect_gender(speaker: str) -> str:
    """'female' when the name carries a female role word or name, else 'male'."""
    return "female" if _has_keyword(speaker.upper(), FEMALE_KEYWORDS) else "male"


def build_override_map(characters) -> dict[str, str]:
    """Map full and first names (upper-cased) to a character's voice id.

    characters is an iterable of dicts with "name" and "voice" keys, or a
    cast dict as returned by load_cast().
    """
    if isinstance(characters, dict):
        characters = [
            {"name": name, "voice": info.get("voice"), "aliases": info.get("aliases", [])}
            for name, info in characters.get("cast", {}).items()
        ]

    overrides = {}
    for char in characters:
        voice = char.get("voice")
        if not voice:
            continue
        for name in [char["name"], *char.get("aliases", [])]:
            upper = name.upper().strip()
            if not upper:
                continue
            overrides[upper] = voice
            overrides.setdefault(upper.split()[0], voice)
    return overrides


def load_cast(script_path: str) -> dict:
    """Load .cast.json sidecar file if it exists.

    Returns cast dict or empty dict if not found or malformed.
    """
    base = os.path.splitext(script_path)[0]
    cast_path = base + ".cast.json"
    if not os.path.exists(cast_path):
        return {}
    try:
        with open(cast_path) as f:
            return json.load(f)
    except json.JSONDecodeError:
        logger.warning("Malformed cast file: %s, using pool assignment", cast_path)
        return {}


@dataclass
class VoiceSession:
    """Per-episode assignment state: speaker memo and round-robin counters."""

    assignments: dict[str, str] = field(default_factory=dict)
    counters: dict[str, int] = field(default_factory=dict)

    def next_from(self, pool_key: str, pool: list[str]) -> str:
        index = self.counters.get(pool_key, 0)
        self.counters[pool_key] = index + 1
        return pool[index % len(pool)]


class VoiceResolver:
    """Resolve speaker names to voice ids.

    Priority: override map (full name, then first name), then session memo, then
    special classes (narrator, robotic, elderly), then accent/gender pool,
    round-robin. Call reset() once per episode.
    """

    def __init__(self, overrides: dict | None = None, pools: dict | None = None,
                 accent: str = DEFAULT_ACCENT):
        self.overrides = {k.upper(): v for k, v in (overrides or {}).items()}
        self.pools = pools or ELEVENLABS_POOLS
        self.accent = accent
        self.session = VoiceSession()
        if f"{accent}_male" not in self.pools or f"{accent}_female" not in self.pools:
            raise ValueError(f"No voice pools for accent: {accent}")

    @property
    def assignments(self) -> dict[str, str]:
        return dict(self.session.assignments)

    def reset(self) -> None:
        self.session = VoiceSession()

    def resolve(self, speaker: str) -> str:
        name = (speaker or "").upper().strip()

        if name in self.overrides:
            return self.overrides[name]
        first = name.split()[0] if name else ""
        if first in self.overrides:
            return self.overrides[first]

        if name in self.session.assignments:
            return self.session.assignments[name]

        voice, description = self._assign(name)
        self.session.assignments[name] = voice
        logger.info("Voice assigned: %s -> %s (%s)", name, description, voice)
        return voice

    def _assign(self, name: str) -> tuple[str, str]:
        if "NARRATOR" in name:
            return self.pools["narrator"][0], "narrator"

        if _has_keyword(name, ROBOTIC_KEYWORDS):
            return self.pools["robotic"][0], "robotic"

        gender = detect_gender(name)
        if _has_keyword(name, ELDERLY_KEYWORDS):
            return self.pools[f"elderly_{gender}"][0], f"elderly {gender}"

        pool_key = f"{self.accent}_{gender}"
        return self.session.next_from(pool_key, self.pools[pool_key]), pool_key.replace("_", " ")
