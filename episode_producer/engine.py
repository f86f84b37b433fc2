"""External audio-processing engine (ffmpeg) behind a small capability interface."""

import io
import logging
import os
import shlex
import shutil
import subprocess
import uuid
from typing import Protocol

from pydub import AudioSegment

from episode_producer.constants import OUTPUT_BITRATE, OUTPUT_CHANNELS, SAMPLE_RATE
from episode_producer.errors import MixingStageError, ProducerError

logger = logging.getLogger(__name__)

# Keep only the end of ffmpeg's stderr in error messages
STDERR_TAIL_CHARS = 800


class AudioEngine(Protocol):
    """What the mixer needs from an audio backend.

    apply() runs a filter graph whose inputs are [0:a], [1:a], ... and whose
    output label is [out]; it returns the encoded result.
    """

    def apply(self, graph: str, inputs: list[bytes], workdir: str, *, stage: str) -> bytes: ...

    def duration(self, data: bytes) -> float: ...

    def silence(self, seconds: float) -> bytes: ...


def require_ffmpeg() -> str:
    """Locate the ffmpeg binary via FFMPEG_PATH or PATH."""
    path = os.environ.get("FFMPEG_PATH") or shutil.which("ffmpeg")
    if not path:
        raise ProducerError("ffmpeg not found: install it or set FFMPEG_PATH")
    return path


class FFmpegEngine:
    def __init__(self, ffmpeg_path: str | None = None, bitrate: str = OUTPUT_BITRATE,
                 sample_rate: int = SAMPLE_RATE, channels: int = OUTPUT_CHANNELS):
        self.ffmpeg_path = ffmpeg_path or require_ffmpeg()
        self.bitrate = bitrate
        self.sample_rate = sample_rate
        self.channels = channels

    def _command(self, graph: str, input_paths: list[str], output_path: str) -> list[str]:
        cmd = [self.ffmpeg_path, "-hide_banner", "-loglevel", "error", "-y"]
        for path in input_paths:
            cmd += ["-i", path]
        cmd += [
            "-filter_complex", graph,
            "-map", "[out]",
            "-ar", str(self.sample_rate),
            "-ac", str(self.channels),
            "-c:a", "libmp3lame",
            "-b:a", self.bitrate,
            output_path,
        ]
        return cmd

    def apply(self, graph: str, inputs: list[bytes], workdir: str, *, stage: str) -> bytes:
        """Run one ffmpeg step inside workdir and return the encoded mp3 bytes.

        Raises MixingStageError on a non-zero exit, empty output, or when
        ffmpeg or the scratch files cannot be reached.
        """
        run_id = uuid.uuid4().hex[:12]
        input_paths = []
        output_path = os.path.join(workdir, f"{stage}_{run_id}_out.mp3")
        try:
            for i, data in enumerate(inputs):
                path = os.path.join(workdir, f"{stage}_{run_id}_in{i}")
                with open(path, "wb") as f:
                    f.write(data)
                input_paths.append(path)

            cmd = self._command(graph, input_paths, output_path)
            logger.debug("$ %s", " ".join(shlex.quote(c) for c in cmd))
            cp = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise MixingStageError(stage, str(e)) from e
        if cp.returncode != 0:
            raise MixingStageError(stage, cp.stderr.strip()[-STDERR_TAIL_CHARS:] or f"exit {cp.returncode}")

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            raise MixingStageError(stage, "ffmpeg produced no output")
        with open(output_path, "rb") as f:
            return f.read()

    def duration(self, data: bytes) -> float:
        """Measured length in seconds."""
        return len(AudioSegment.from_file(io.BytesIO(data))) / 1000.0

    def silence(self, seconds: float) -> bytes:
        audio = AudioSegment.silent(duration=int(round(seconds * 1000)), frame_rate=self.sample_rate)
        audio = audio.set_channels(self.channels)
        buf = io.BytesIO()
        audio.export(buf, format="mp3", bitrate=self.bitrate)
        return buf.getvalue()
