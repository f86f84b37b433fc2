"""Assemble rendered segments into one mixed, loudness-normalized episode."""

import logging
import tempfile

from pydub.exceptions import CouldntDecodeError, CouldntEncodeError

from episode_producer.constants import MOTIF_PRE_ROLL, SCRATCH_PREFIX, SPOT_PRE_ROLL
from episode_producer.effects import (
    chain_graph,
    concat_graph,
    dialogue_chain,
    loudnorm_graph,
    mixdown_graph,
    motif_chain,
    music_bed_graph,
    placeable_events,
    sfx_bus_graph,
    sfx_chain,
)
from episode_producer.engine import AudioEngine
from episode_producer.errors import MixingStageError, NoContentError
from episode_producer.models import (
    DialogueSegment,
    MixOptions,
    MixReport,
    MotifSegment,
    RenderedSegment,
    SfxRole,
    SfxSegment,
    SilenceSegment,
    TimelineEvent,
)
from episode_producer.sfx import classify_role

logger = logging.getLogger(__name__)


def _has_backbone_content(rendered: list[RenderedSegment | None]) -> bool:
    for item in rendered:
        if item is None:
            continue
        if isinstance(item.segment, DialogueSegment) and item.audio:
            return True
        if isinstance(item.segment, SilenceSegment) and item.segment.duration > 0:
            return True
    return False


class MixingEngine:
    """Seven-stage episode mix on top of an AudioEngine.

    1. process each segment (dialogue carving, SFX carving, motif color)
    2. account the timeline from measured durations
    3. build the SFX bus (spots and looped beds at their offsets)
    4. build the music bed
    5. mix down with dialogue-keyed ducking and a peak limiter
    6. append the ending silence
    7. loudness-normalize

    Each call works in its own scratch directory, removed on success and
    failure. last_report holds counts from the most recent mix.
    """

    def __init__(self, engine: AudioEngine, scratch_root: str | None = None):
        self.engine = engine
        self.scratch_root = scratch_root
        self.last_report: MixReport | None = None

    def mix(
        self,
        rendered: list[RenderedSegment | None],
        music: bytes | None = None,
        options: MixOptions | None = None,
    ) -> bytes:
        """Mix rendered segments (in script order) into final mp3 bytes.

        Raises NoContentError when there is no dialogue or silence to carry
        the timeline, and MixingStageError when an engine step fails.
        """
        options = options or MixOptions()
        if not _has_backbone_content(rendered):
            raise NoContentError("No dialogue or silence segments to mix")

        report = MixReport()
        self.last_report = report

        with tempfile.TemporaryDirectory(prefix=SCRATCH_PREFIX, dir=self.scratch_root) as workdir:
            backbone_parts, events = self._process_segments(rendered, workdir, report)

            if len(backbone_parts) == 1:
                backbone = backbone_parts[0]
            else:
                backbone = self._apply(concat_graph(len(backbone_parts)), backbone_parts, workdir, "concat")
            duration = self._measure(backbone, "concat")
            report.backbone_seconds = duration
            logger.info("Dialogue track: %.2fs", duration)

            placed = placeable_events(events, duration)
            if len(placed) < len(events):
                logger.info("Dropped %d bed(s) cut off by a later bed", len(events) - len(placed))
            events = placed

            bus = None
            if events:
                bus = self._apply(
                    sfx_bus_graph(events, duration, options.sfx_volume),
                    [e.audio for e in events], workdir, "sfx_bus",
                )

            bed = None
            if music:
                bed = self._apply(
                    music_bed_graph(duration, options.fade_in_sec, options.fade_out_sec, options.music_volume),
                    [music], workdir, "music",
                )

            inputs = [backbone] + [b for b in (bus, bed) if b is not None]
            output = self._apply(
                mixdown_graph(options.dialogue_volume, bus is not None, bed is not None),
                inputs, workdir, "mixdown",
            )

            if options.end_with_silence and options.ending_silence_sec > 0:
                tail = self._silence(options.ending_silence_sec, "ending")
                output = self._apply(concat_graph(2), [output, tail], workdir, "ending")
                logger.info("Ending silence: %ss", options.ending_silence_sec)

            if options.normalize:
                output = self._apply(loudnorm_graph(), [output], workdir, "loudnorm")

        logger.info(
            "Mix complete: %d dialogue, %d silences, %d spots, %d beds, %d motifs, %d skipped (%.2f MB)",
            report.dialogue, report.silences, report.spots, report.beds, report.motifs,
            len(report.skipped), len(output) / 1024 / 1024,
        )
        return output

    def _process_segments(self, rendered, workdir, report):
        """Stages 1 and 2: per-segment processing and timeline accounting.

        The clock advances only on dialogue and silence; effects are placed
        at the clock minus their pre-roll. Indexes in the report and in
        errors are script positions where the renderer recorded one.
        """
        backbone = []
        events = []
        clock = 0.0

        for position, item in enumerate(rendered):
            if item is None:
                logger.warning("Segment %d: no rendered audio, skipping", position)
                report.skipped.append(position)
                continue

            index = position if item.source_index is None else item.source_index
            seg = item.segment
            if isinstance(seg, SilenceSegment):
                if seg.duration <= 0:
                    continue
                audio = self._silence(seg.duration, "silence", index)
                backbone.append(audio)
                clock += self._measure(audio, "silence", index)
                report.silences += 1
                logger.debug("Silence: %ss (%s)", seg.duration, seg.text)
                continue

            if not item.audio:
                logger.warning("Segment %d (%s): empty audio, skipping", index, seg.kind)
                report.skipped.append(index)
                continue

            if isinstance(seg, DialogueSegment):
                processed = self._apply(
                    chain_graph(dialogue_chain(seg.scene_type)), [item.audio], workdir, "dialogue", index,
                )
                backbone.append(processed)
                clock += self._measure(processed, "dialogue", index)
                report.dialogue += 1
                logger.debug("Voice: %s [%s]", seg.speaker, seg.scene_type.value)

            elif isinstance(seg, MotifSegment):
                processed = self._apply(
                    chain_graph(motif_chain(seg.motif_type)), [item.audio], workdir, "motif", index,
                )
                events.append(TimelineEvent(
                    index=index, audio=processed, start_seconds=max(0.0, clock - MOTIF_PRE_ROLL),
                    role=SfxRole.SPOT, prompt=seg.sfx_prompt, motif_type=seg.motif_type,
                ))
                report.motifs += 1
                logger.debug("Motif: %s at %.2fs", seg.motif_type.value, clock)

            elif isinstance(seg, SfxSegment):
                role = item.role or classify_role(seg.sfx_prompt)
                processed = self._apply(
                    chain_graph(sfx_chain(role, seg.sfx_prompt, seg.scene_type)),
                    [item.audio], workdir, "sfx", index,
                )
                pre_roll = 0.0 if role is SfxRole.BED else SPOT_PRE_ROLL
                events.append(TimelineEvent(
                    index=index, audio=processed, start_seconds=max(0.0, clock - pre_roll),
                    role=role, prompt=seg.sfx_prompt,
                ))
                if role is SfxRole.BED:
                    report.beds += 1
                else:
                    report.spots += 1
                logger.debug("SFX %s at %.2fs: %s", role.value, clock, seg.sfx_prompt)

        return backbone, events

    def _apply(self, graph, inputs, workdir, stage, index=None) -> bytes:
        try:
            return self.engine.apply(graph, inputs, workdir, stage=stage)
        except MixingStageError as e:
            raise MixingStageError(stage, e.detail, index) from e

    def _measure(self, data, stage, index=None) -> float:
        try:
            return self.engine.duration(data)
        except CouldntDecodeError as e:
            raise MixingStageError(stage, f"could not measure duration: {e}", index) from e

    def _silence(self, seconds, stage, index=None) -> bytes:
        try:
            return self.engine.silence(seconds)
        except (OSError, CouldntEncodeError) as e:
            raise MixingStageError(stage, f"could not render silence: {e}", index) from e
