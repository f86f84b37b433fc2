"""CLI interface with subcommand routing."""

import argparse
import json
import logging
import os
import sys

from episode_producer.assembly import MixingEngine
from episode_producer.constants import DEFAULT_ACCENT, OUTPUT_DIR, VERSION
from episode_producer.engine import FFmpegEngine
from episode_producer.errors import ProducerError
from episode_producer.exporter import build_manifest, episode_key
from episode_producer.models import MixOptions, segment_to_dict
from episode_producer.normalizer import normalize_script
from episode_producer.parser import estimate_duration, parse_script, summarize
from episode_producer.pipeline import EPISODE_MIX_OPTIONS, produce_episode, publish_episode
from episode_producer.providers import EdgeSpeechProvider, ElevenLabsProvider, LocalBlobStore
from episode_producer.sfx import estimate_duration as estimate_sfx_seconds
from episode_producer.sfx import shape
from episode_producer.voices import CATALOGS, VoiceResolver, build_override_map, load_cast


def _read_script(path: str) -> str:
    if not os.path.exists(path):
        print(f"Error: File not found: {path}", file=sys.stderr)
        raise SystemExit(1)
    with open(path) as f:
        text = f.read()
    if not text.strip():
        print(f"Error: File is empty: {path}", file=sys.stderr)
        raise SystemExit(1)
    return text


def _read_json(path: str, label: str) -> dict:
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: Could not read {label} file {path}: {e}", file=sys.stderr)
        raise SystemExit(1)


def _slug(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0].lower().replace(" ", "-")


def cmd_parse(args):
    """Print the segment timeline for a script."""
    text = _read_script(args.script)
    if args.normalize:
        text = normalize_script(text)
    segments = parse_script(text)

    if args.json:
        print(json.dumps([segment_to_dict(s) for s in segments], indent=2))
        return

    for i, seg in enumerate(segments):
        if seg.kind == "dialogue":
            print(f"  {i:03d} {seg.speaker} [{seg.emotion}]: {seg.text}")
        elif seg.kind == "silence":
            print(f"  {i:03d} (silence {seg.duration}s, {seg.text})")
        elif seg.kind == "motif":
            print(f"  {i:03d} (motif {seg.motif_type.value}: {seg.sfx_prompt})")
        else:
            print(f"  {i:03d} (sfx: {seg.sfx_prompt})")
    counts = summarize(segments)
    print(
        f"{len(segments)} segments: {counts['dialogue']} dialogue, {counts['sfx']} sfx, "
        f"{counts['motif']} motif, {counts['silence']} silence (~{estimate_duration(segments)}s)"
    )


def cmd_voices(args):
    """List available voices."""
    pools = CATALOGS[args.catalog]
    filter_str = args.filter.lower() if args.filter else None
    found = False
    for pool_name, voices in pools.items():
        matching = [v for v in voices if not filter_str or filter_str in v.lower() or filter_str in pool_name]
        if not matching:
            continue
        if not found:
            print(f"Available voices ({args.catalog}):")
            found = True
        print(f"  {pool_name}: {', '.join(matching)}")
    if not found:
        print("No matching voices found.")


def cmd_shape(args):
    """Show the production prompt for one sound cue."""
    shaped = shape(" ".join(args.cue))
    print(f"Role: {shaped.role.value}")
    print(f"Prompt: {shaped.prompt}")
    print(f"Duration: {estimate_sfx_seconds(shaped.prompt)}s")


def _providers(name: str):
    """(speech, sound, voice catalog) for a provider name."""
    if name == "elevenlabs":
        eleven = ElevenLabsProvider()
        return eleven.speech(), eleven.sound(), CATALOGS["elevenlabs"]

    sound = None
    if os.environ.get("ELEVENLABS_API_KEY"):
        sound = ElevenLabsProvider().sound()
    else:
        print("  No ELEVENLABS_API_KEY: sound cues will be skipped")
    return EdgeSpeechProvider(), sound, CATALOGS["edge"]


def cmd_produce(args):
    """Produce a mixed episode from a script."""
    text = _read_script(args.script)
    slug = _slug(args.script)

    cast = _read_json(args.cast, "cast") if args.cast else load_cast(args.script)
    direction = _read_json(args.direction, "direction") if args.direction else {}
    options = MixOptions.from_dict(direction, base=EPISODE_MIX_OPTIONS)
    if args.raw:
        options = MixOptions.from_dict({"normalize": False}, base=options)

    try:
        speech, sound, pools = _providers(args.provider)
        resolver = VoiceResolver(overrides=build_override_map(cast), pools=pools, accent=args.accent)
        mixer = MixingEngine(FFmpegEngine())

        print(f"Producing: {slug}")
        result = produce_episode(
            text,
            speech=speech,
            sound=sound,
            resolver=resolver,
            mixer=mixer,
            options=options,
            normalize=not args.no_normalize,
            with_music=not args.no_music,
            music_file=args.music,
            genre=args.genre or direction.get("genre"),
            soundscape=direction.get("soundscape"),
        )

        manifest = build_manifest(
            title=direction.get("title", slug),
            segments=result.segments,
            voices=result.voices,
            options=options,
            report=result.report,
            music_source=result.music_source,
            failed=result.failed,
        )
        store = LocalBlobStore(args.out)
        url = publish_episode(store, episode_key(args.series, slug), result.audio, manifest)
    except ProducerError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)

    for speaker, voice in result.voices.items():
        print(f"  {speaker} → {voice}")
    if result.failed:
        print(f"  Skipped {len(result.failed)} segment(s) after synthesis errors: {result.failed}")
    print(f"Done: {url}")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="producer",
        description="Episode Producer: turn drama scripts into mixed audio episodes",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # parse
    parse_parser = subparsers.add_parser("parse", help="Show the segment timeline for a script")
    parse_parser.add_argument("script", help="Path to the script text file")
    parse_parser.add_argument("--normalize", action="store_true", help="Run the scene normalizer first")
    parse_parser.add_argument("--json", action="store_true", help="Print segments as JSON")
    parse_parser.set_defaults(func=cmd_parse)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.add_argument("--catalog", choices=sorted(CATALOGS), default="elevenlabs")
    voices_parser.set_defaults(func=cmd_voices)

    # shape
    shape_parser = subparsers.add_parser("shape", help="Show the production prompt for a sound cue")
    shape_parser.add_argument("cue", nargs="+", help="Sound cue text")
    shape_parser.set_defaults(func=cmd_shape)

    # produce
    produce_parser = subparsers.add_parser("produce", help="Produce a mixed episode")
    produce_parser.add_argument("script", help="Path to the script text file")
    produce_parser.add_argument("--out", default=OUTPUT_DIR, help="Output directory")
    produce_parser.add_argument("--series", default="local", help="Series id used in the output key")
    produce_parser.add_argument("--provider", choices=["edge", "elevenlabs"], default="edge")
    produce_parser.add_argument("--accent", choices=["indian", "american", "british"], default=DEFAULT_ACCENT,
                                help="Voice pool accent")
    produce_parser.add_argument("--cast", help="Cast JSON (default: <script>.cast.json)")
    produce_parser.add_argument("--direction", help="Direction JSON with mix settings")
    produce_parser.add_argument("--music", help="Background music file")
    produce_parser.add_argument("--genre", help="Genre for generated music")
    produce_parser.add_argument("--no-music", action="store_true", help="No background music")
    produce_parser.add_argument("--no-normalize", action="store_true", help="Skip the scene normalizer")
    produce_parser.add_argument("--raw", action="store_true", help="Skip final loudness normalization")
    produce_parser.set_defaults(func=cmd_produce)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
