"""End-to-end episode production: script text in, mixed episode out."""

import json
import logging
import time
from dataclasses import dataclass, field

from episode_producer.assembly import MixingEngine
from episode_producer.constants import (
    BED_SYNTH_SECONDS,
    DIALOGUE_PAUSE,
    INTER_CALL_DELAY,
    NARRATOR_PAUSE,
    SFX_PROMPT_SYNTH_LIMIT,
)
from episode_producer.errors import NoContentError, ProducerError, SynthesisError
from episode_producer.exporter import manifest_key
from episode_producer.models import (
    DialogueSegment,
    MixOptions,
    MixReport,
    MotifSegment,
    RenderedSegment,
    Segment,
    SfxRole,
    SfxSegment,
    SilenceSegment,
    voice_settings_for,
)
from episode_producer.music import resolve_music
from episode_producer.normalizer import normalize_script
from episode_producer.parser import clean_dialogue_text, parse_script
from episode_producer.sfx import estimate_duration, shape
from episode_producer.voices import VoiceResolver

logger = logging.getLogger(__name__)

# Mix settings for a full episode: louder effects and a longer tail fade
EPISODE_MIX_OPTIONS = MixOptions(
    dialogue_volume=1.0,
    sfx_volume=0.85,
    music_volume=0.08,
    fade_in_sec=1.5,
    fade_out_sec=2.5,
    normalize=True,
    end_with_silence=True,
    ending_silence_sec=3.0,
)


@dataclass
class EpisodeResult:
    audio: bytes
    segments: list[Segment]
    report: MixReport | None = None
    voices: dict[str, str] = field(default_factory=dict)
    music_source: str | None = None
    failed: list[int] = field(default_factory=list)    # segment indices whose synthesis failed


def _speaker_pause(speaker: str) -> SilenceSegment:
    duration = NARRATOR_PAUSE if "NARRATOR" in speaker.upper() else DIALOGUE_PAUSE
    return SilenceSegment(text="speaker_pause", duration=duration)


class _Renderer:
    """Walk parsed segments in order and call the providers for each one."""

    def __init__(self, speech, sound, resolver: VoiceResolver, delay: float, sleep):
        self.speech = speech
        self.sound = sound
        self.resolver = resolver
        self.delay = delay
        self.sleep = sleep
        self.bed_cache: dict[str, bytes] = {}
        self.failed: list[int] = []

    def render(self, segments: list[Segment]) -> list[RenderedSegment]:
        rendered = []
        for index, seg in enumerate(segments):
            if isinstance(seg, SilenceSegment):
                items = [RenderedSegment(seg)] if seg.duration > 0 else []
            else:
                try:
                    if isinstance(seg, DialogueSegment):
                        items = self._dialogue(seg)
                    else:
                        items = [self._effect(seg)]
                except SynthesisError as e:
                    e.index = index
                    label = seg.speaker if isinstance(seg, DialogueSegment) else seg.sfx_prompt[:50]
                    logger.error("Segment %d (%s, %s) skipped: %s", index, seg.kind, label, e.detail)
                    self.failed.append(index)
                    items = [RenderedSegment(seg)]
            for item in items:
                item.source_index = index
            rendered.extend(items)
        return rendered

    def _call(self, fn, *args) -> bytes:
        try:
            return fn(*args)
        finally:
            if self.delay:
                self.sleep(self.delay)

    def _dialogue(self, seg: DialogueSegment) -> list[RenderedSegment]:
        text = clean_dialogue_text(seg.text)
        if not text:
            return []
        voice = self.resolver.resolve(seg.speaker)
        settings = voice_settings_for(seg.emotion)
        logger.info("Voice: %s [%s] [%s]", seg.speaker, seg.emotion, seg.scene_type.value)
        audio = self._call(self.speech.synth, text, voice, settings)
        return [RenderedSegment(seg, audio), RenderedSegment(_speaker_pause(seg.speaker))]

    def _effect(self, seg: SfxSegment | MotifSegment) -> RenderedSegment:
        if self.sound is None:
            raise SynthesisError("sound", "no sound provider configured")
        shaped = shape(seg.sfx_prompt)
        prompt = shaped.prompt[:SFX_PROMPT_SYNTH_LIMIT]
        # Motifs are short stingers placed like spot effects
        role = SfxRole.SPOT if isinstance(seg, MotifSegment) else shaped.role

        if role is SfxRole.BED:
            if prompt in self.bed_cache:
                logger.info("Reusing cached ambience bed: %s", prompt[:50])
                return RenderedSegment(seg, self.bed_cache[prompt], role)
            audio = self._call(self.sound.synth, prompt, BED_SYNTH_SECONDS)
            self.bed_cache[prompt] = audio
        else:
            audio = self._call(self.sound.synth, prompt, estimate_duration(prompt))

        logger.info("SFX (%s): %s", role.value, prompt[:50])
        return RenderedSegment(seg, audio, role)


def render_segments(
    segments: list[Segment],
    speech,
    sound,
    resolver: VoiceResolver,
    inter_call_delay: float = INTER_CALL_DELAY,
    sleep=time.sleep,
) -> tuple[list[RenderedSegment], list[int]]:
    """Synthesize every segment in script order.

    Returns (rendered, failed). Every entry carries the index of the script
    segment it came from. A failed synthesis leaves an entry with no audio
    and its segment index in failed; a speaker pause follows each rendered
    dialogue line.
    """
    renderer = _Renderer(speech, sound, resolver, inter_call_delay, sleep)
    rendered = renderer.render(segments)
    return rendered, renderer.failed


def produce_episode(
    script: str,
    *,
    speech,
    sound,
    resolver: VoiceResolver,
    mixer: MixingEngine,
    options: MixOptions | None = None,
    normalize: bool = True,
    with_music: bool = True,
    music_file: str | None = None,
    genre: str | None = None,
    soundscape: str | None = None,
    inter_call_delay: float = INTER_CALL_DELAY,
    sleep=time.sleep,
) -> EpisodeResult:
    """Turn one episode script into mixed, normalized mp3 bytes.

    Raises NoContentError when the script has no dialogue, and
    MixingStageError when the mix fails. Individual synthesis failures are
    logged and skipped.
    """
    text = normalize_script(script) if normalize else script
    segments = parse_script(text)
    if not any(isinstance(s, DialogueSegment) for s in segments):
        raise NoContentError("Script has no dialogue")

    resolver.reset()
    rendered, failed = render_segments(segments, speech, sound, resolver, inter_call_delay, sleep)
    logger.info("Rendered %d entries, %d failed", len(rendered), len(failed))

    music, music_source = None, None
    if with_music:
        music, music_source = resolve_music(sound, genre, soundscape, music_file)
        logger.info("Music: %s", music_source)

    audio = mixer.mix(rendered, music, options or EPISODE_MIX_OPTIONS)
    return EpisodeResult(
        audio=audio,
        segments=segments,
        report=mixer.last_report,
        voices=resolver.assignments,
        music_source=music_source,
        failed=failed,
    )


def publish_episode(store, key: str, audio: bytes, manifest: dict | None = None,
                    old_key: str | None = None) -> str:
    """Upload the episode (and its manifest), then remove the previous upload.

    Returns the url of the uploaded audio. A failed delete is logged, not raised.
    """
    url = store.put(key, audio, "audio/mpeg")
    if manifest is not None:
        store.put(manifest_key(key), json.dumps(manifest, indent=2).encode(), "application/json")

    if old_key and old_key != key:
        try:
            store.delete(old_key)
            logger.info("Deleted old audio: %s", old_key)
        except (OSError, ProducerError) as e:
            logger.warning("Failed to delete old audio %s: %s", old_key, e)
    return url
