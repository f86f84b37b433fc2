"""Filter-graph builders for each mixing stage.

Every *_graph function returns a complete ffmpeg filter_complex expression
that reads [0:a], [1:a], ... and writes [out]. Nothing here touches audio.
"""

from episode_producer.constants import (
    BED_GAIN,
    BED_MAX_EDGE_FADE,
    BED_MIN_SECONDS,
    DIALOGUE_LUFS,
    LIMITER_CEILING,
    LOUDNESS_RANGE,
    MUSIC_DUCK_RATIO,
    MUSIC_DUCK_THRESHOLD_DB,
    MUSIC_TAIL_SECONDS,
    OUTPUT_CHANNELS,
    SAMPLE_RATE,
    SFX_DUCK_RATIO,
    SFX_DUCK_THRESHOLD_DB,
    SPOT_GAIN,
    TRUE_PEAK_DB,
)
from episode_producer.models import MotifType, SceneType, SfxRole, TimelineEvent
from episode_producer.sfx import is_impact, is_news_like, is_phone

DIALOGUE_BASE = [
    "highpass=f=80",
    "equalizer=f=2500:t=q:w=1.5:g=3",
    "acompressor=threshold=-24dB:ratio=3:attack=10:release=120",
]

# asetrate relabels the input rate, so resample to a known rate first (edge-tts speaks at 24 kHz)
DETUNE = f"aresample={SAMPLE_RATE},asetrate={SAMPLE_RATE}*1.003,aresample={SAMPLE_RATE}"

DIALOGUE_SCENE_FILTERS = {
    SceneType.HOSPITAL: ["aphaser=type=t:speed=0.3:decay=0.3", DETUNE],
    SceneType.PSYCHOACOUSTIC: ["aphaser=type=t:speed=0.3:decay=0.3", DETUNE],
    SceneType.REVELATION: ["aecho=0.8:0.7:20:0.3"],
}

MOTIF_FILTERS = {
    MotifType.OUROBOROS: ["areverse", "aecho=0.6:0.6:50:0.4", "lowpass=f=3000", "volume=0.7"],
    MotifType.HEARTBEAT: ["lowpass=f=100", "acompressor=threshold=-10dB:ratio=8", "volume=0.8"],
    MotifType.GLITCH: ["acrusher=bits=8:mode=log:aa=1", "tremolo=f=20:d=0.3", "volume=0.6"],
}

MUSIC_CARVE = [
    "highpass=f=40",
    "lowpass=f=14000",
    "equalizer=f=2500:t=q:w=1.0:g=-8",
    "acompressor=threshold=-26dB:ratio=2:attack=20:release=300",
]

LOOP_FOREVER = "aloop=loop=-1:size=2e+09"


def num(value: float) -> str:
    """Format a number for a filter argument: 0.9 not 0.8999999999."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def dialogue_chain(scene_type: SceneType = SceneType.NORMAL) -> str:
    """Presence boost and leveling, plus scene-specific color."""
    return ",".join(DIALOGUE_BASE + DIALOGUE_SCENE_FILTERS.get(scene_type, []))


def sfx_chain(role: SfxRole, prompt: str = "", scene_type: SceneType = SceneType.NORMAL) -> str:
    """Carve an effect so it sits under the dialogue band."""
    lower = (prompt or "").lower()
    filters = ["highpass=f=60"]

    if is_news_like(lower):
        filters.append("lowpass=f=1200")
    elif role is SfxRole.BED:
        filters += ["lowpass=f=8000", "equalizer=f=2500:t=q:w=1.0:g=-6"]
    elif is_impact(lower) or is_phone(lower):
        filters += ["lowpass=f=12000", "equalizer=f=2500:t=q:w=1.0:g=-3"]
    else:
        filters += ["lowpass=f=10000", "equalizer=f=2500:t=q:w=1.0:g=-4"]

    if scene_type is SceneType.HOSPITAL:
        filters.append("equalizer=f=3500:t=q:w=1.2:g=-2")

    filters.append("afade=t=in:st=0:d=0.03")
    return ",".join(filters)


def motif_chain(motif_type: MotifType | None) -> str:
    return ",".join(MOTIF_FILTERS.get(motif_type, ["volume=0.7"]))


def music_chain() -> str:
    return ",".join(MUSIC_CARVE)


def chain_graph(chain: str) -> str:
    """Single-input graph applying one filter chain."""
    return f"[0:a]{chain}[out]"


def concat_graph(count: int) -> str:
    """Join count inputs end to end, resampled to a common format first."""
    fmt = f"aformat=sample_rates={SAMPLE_RATE}:channel_layouts={_layout()}"
    parts = [f"[{i}:a]{fmt}[c{i}]" for i in range(count)]
    labels = "".join(f"[c{i}]" for i in range(count))
    parts.append(f"{labels}concat=n={count}:v=0:a=1[out]")
    return ";".join(parts)


def _layout() -> str:
    return "stereo" if OUTPUT_CHANNELS == 2 else "mono"


def bed_lengths(events: list[TimelineEvent], program_end: float) -> dict[int, float]:
    """Seconds each bed plays: until the next bed starts, or program end.

    Keyed by position in events. A bed cut off by another starting at the
    same offset gets 0; the last bed plays at least BED_MIN_SECONDS.
    """
    beds = sorted(
        (i for i, e in enumerate(events) if e.role is SfxRole.BED),
        key=lambda i: events[i].start_seconds,
    )
    lengths = {}
    for n, i in enumerate(beds):
        start = events[i].start_seconds
        end = events[beds[n + 1]].start_seconds if n + 1 < len(beds) else program_end
        span = max(0.0, end - start)
        last = n + 1 == len(beds)
        lengths[i] = max(BED_MIN_SECONDS, span) if last and span > 0 else span
    return lengths


def placeable_events(events: list[TimelineEvent], program_end: float) -> list[TimelineEvent]:
    """Drop beds with nothing left to play so beds never overlap."""
    lengths = bed_lengths(events, program_end)
    return [e for i, e in enumerate(events) if lengths.get(i, 1.0) > 0]


def sfx_bus_graph(events: list[TimelineEvent], target_seconds: float, sfx_volume: float) -> str:
    """Place every SFX/motif at its timeline offset and sum to one bus.

    Input i is events[i]. Spots are loud with a short attack; beds loop
    under the scene with edge fades. Beds with nothing left to play are
    left out. The bus is trimmed to target_seconds.
    """
    lengths = bed_lengths(events, target_seconds)
    parts = []
    placed = []
    for i, event in enumerate(events):
        if lengths.get(i) == 0:
            continue
        delay = max(0, round(event.start_seconds * 1000))
        adelay = f"adelay={delay}|{delay}"
        if event.role is SfxRole.BED:
            length = lengths[i]
            fade = min(BED_MAX_EDGE_FADE, length / 4)
            chain = [
                LOOP_FOREVER,
                f"atrim=0:{num(length)}",
                f"afade=t=in:st=0:d={num(fade)}",
                f"afade=t=out:st={num(max(0.0, length - fade))}:d={num(fade)}",
                f"volume={num(sfx_volume * BED_GAIN)}",
                adelay,
            ]
        else:
            chain = [f"volume={num(sfx_volume * SPOT_GAIN)}", "afade=t=in:st=0:d=0.01", adelay]
        parts.append(f"[{i}:a]{','.join(chain)}[s{i}]")
        placed.append(f"[s{i}]")

    parts.append(
        f"{''.join(placed)}amix=inputs={len(placed)}:duration=longest:dropout_transition=2:normalize=0,"
        f"atrim=0:{num(target_seconds)}[out]"
    )
    return ";".join(parts)


def music_bed_graph(duration: float, fade_in: float, fade_out: float, volume: float) -> str:
    """Carve, loop and trim music to the program length, with fades."""
    chain = [
        music_chain(),
        LOOP_FOREVER,
        f"atrim=0:{num(duration + MUSIC_TAIL_SECONDS)}",
        f"afade=t=in:st=0:d={num(fade_in)}",
        f"afade=t=out:st={num(max(0.0, duration - fade_out))}:d={num(fade_out)}",
        f"volume={num(volume)}",
    ]
    return chain_graph(",".join(chain))


def mixdown_graph(dialogue_volume: float, has_sfx: bool, has_music: bool) -> str:
    """Sum dialogue, SFX bus and music bed with dialogue-keyed ducking.

    Inputs: 0 dialogue, then the SFX bus (if any), then music (if any).
    Dialogue is split so it can both play and drive each sidechain.
    """
    sidechains = int(has_sfx) + int(has_music)
    dialogue = f"[0:a]volume={num(dialogue_volume)},acompressor=threshold=-22dB:ratio=2:attack=10:release=120"
    if sidechains:
        keys = "".join(f"[key{k}]" for k in range(sidechains))
        parts = [f"{dialogue},asplit={sidechains + 1}[dlg]{keys}"]
    else:
        parts = [f"{dialogue}[dlg]"]

    mix = ["[dlg]"]
    next_input, next_key = 1, 0
    if has_sfx:
        parts.append(f"[{next_input}:a]highpass=f=60,equalizer=f=2500:t=q:w=1.0:g=-2[sfxraw]")
        parts.append(
            f"[sfxraw][key{next_key}]sidechaincompress=threshold={SFX_DUCK_THRESHOLD_DB}dB"
            f":ratio={SFX_DUCK_RATIO}:attack=10:release=200[sfx]"
        )
        mix.append("[sfx]")
        next_input, next_key = next_input + 1, next_key + 1
    if has_music:
        parts.append(
            f"[{next_input}:a][key{next_key}]sidechaincompress=threshold={MUSIC_DUCK_THRESHOLD_DB}dB"
            f":ratio={MUSIC_DUCK_RATIO}:attack=10:release=400[music]"
        )
        mix.append("[music]")

    limiter = f"alimiter=limit={LIMITER_CEILING}"
    if len(mix) == 1:
        parts.append(f"[dlg]{limiter}[out]")
    else:
        parts.append(
            f"{''.join(mix)}amix=inputs={len(mix)}:duration=first:dropout_transition=2:normalize=0,"
            f"{limiter}[out]"
        )
    return ";".join(parts)


def loudnorm_graph() -> str:
    return chain_graph(f"loudnorm=I={DIALOGUE_LUFS}:TP={TRUE_PEAK_DB}:LRA={LOUDNESS_RANGE}")
