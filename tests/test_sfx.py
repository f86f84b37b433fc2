"""Tests for sfx module and the keyword rule helpers."""

import pytest

from episode_producer.models import SfxRole
from episode_producer.rules import all_of, any_of, first_match, matches
from episode_producer.sfx import (
    DEFAULT_AMBIENCE_BED,
    classify_role,
    derive_ambience_bed,
    estimate_duration,
    shape,
)


# --- Rule helpers ---

def test_first_match_wins_in_order():
    rules = [(any_of("door"), "first"), (any_of("door", "slam"), "second")]
    assert first_match(rules, "door slam") == "first"
    assert first_match(rules, "slam") == "second"
    assert first_match(rules, "rain", "none") == "none"


def test_all_of_and_matches():
    phone_ring = all_of(any_of("phone"), any_of("ring"))
    assert phone_ring("phone ringing")
    assert not phone_ring("phone buzzing")
    assert matches(r"\bbeat\b")("a beat passes")
    assert not matches(r"\bbeat\b")("heartbeat")


# --- Role classification ---

@pytest.mark.parametrize("text,role", [
    ("rain on the roof", SfxRole.BED),
    ("Newsroom chatter", SfxRole.BED),
    ("low hum of machines", SfxRole.BED),
    ("door slams", SfxRole.SPOT),
    ("phone vibrating", SfxRole.SPOT),
    ("", SfxRole.SPOT),
])
def test_classify_role(text, role):
    assert classify_role(text) is role


# --- Prompt shaping ---

def test_shape_rewrites_known_cue():
    shaped = shape("Phone vibrating on the table")
    assert shaped.prompt.startswith("smartphone vibrating on table")
    assert shaped.role is SfxRole.SPOT


def test_shape_role_comes_from_raw_text():
    """A rain cue is a bed even though its canonical prompt is rewritten."""
    shaped = shape("rain against glass")
    assert shaped.prompt.startswith("light monsoon rain ambience")
    assert shaped.role is SfxRole.BED


def test_shape_first_rule_wins():
    """Car impact outranks the generic impact rule."""
    assert shape("car hits him").prompt.startswith("dramatic car crash impact")
    assert shape("a sudden hit").prompt.startswith("sudden impact thud")


def test_shape_unmatched_passes_through():
    assert shape("  kettle   whistling  ").prompt == "kettle whistling"


def test_shape_is_bounded():
    shaped = shape("x" * 500)
    assert len(shaped.prompt) == 220


def test_shape_is_deterministic():
    assert shape("footsteps in the hall") == shape("footsteps in the hall")


def test_shape_empty_input():
    shaped = shape("")
    assert shaped.prompt == ""
    assert shaped.role is SfxRole.SPOT


# --- Durations and beds ---

@pytest.mark.parametrize("prompt,seconds", [
    ("car crash", 4),
    ("body thud", 3),
    ("phone ringing", 3),
    ("dial tone", 2),
    ("door slam", 2),
    ("footsteps approaching", 4),
    ("rain ambience", 8),
    ("kettle whistling", 4),
])
def test_estimate_duration(prompt, seconds):
    assert estimate_duration(prompt) == seconds


@pytest.mark.parametrize("hint,expected", [
    ("INT. HOSPITAL CORRIDOR", "hospital room tone bed"),
    ("the anchor reads the news", "newsroom ambience bed"),
    ("storm outside", "light rain ambience bed"),
    ("EXT. STREET", "city street ambience bed"),
    ("basement archive", "quiet room tone bed"),
])
def test_derive_ambience_bed(hint, expected):
    assert derive_ambience_bed(hint).startswith(expected)


def test_derive_ambience_bed_default():
    assert derive_ambience_bed("a kitchen") == DEFAULT_AMBIENCE_BED
    assert derive_ambience_bed(None) == DEFAULT_AMBIENCE_BED
