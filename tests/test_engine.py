"""Tests for engine module (ffmpeg wrapper)."""

import subprocess
from unittest.mock import patch

import pytest

from episode_producer.engine import FFmpegEngine, require_ffmpeg
from episode_producer.errors import MixingStageError, ProducerError


def _fake_run(output=b"ID3mp3", returncode=0, stderr=""):
    """subprocess.run stand-in that writes output to the last argument."""
    def run(cmd, **kwargs):
        if returncode == 0 and output:
            with open(cmd[-1], "wb") as f:
                f.write(output)
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)
    return run


# --- Locating ffmpeg ---

def test_require_ffmpeg_prefers_env(monkeypatch):
    monkeypatch.setenv("FFMPEG_PATH", "/opt/ffmpeg/bin/ffmpeg")
    assert require_ffmpeg() == "/opt/ffmpeg/bin/ffmpeg"


@patch("episode_producer.engine.shutil.which", return_value="/usr/bin/ffmpeg")
def test_require_ffmpeg_from_path(mock_which, monkeypatch):
    monkeypatch.delenv("FFMPEG_PATH", raising=False)
    assert require_ffmpeg() == "/usr/bin/ffmpeg"


@patch("episode_producer.engine.shutil.which", return_value=None)
def test_require_ffmpeg_missing(mock_which, monkeypatch):
    monkeypatch.delenv("FFMPEG_PATH", raising=False)
    with pytest.raises(ProducerError, match="ffmpeg not found"):
        require_ffmpeg()


# --- Running graphs ---

@patch("episode_producer.engine.subprocess.run")
def test_apply_builds_command(mock_run, tmp_path):
    """Inputs are written to the workdir and passed in order."""
    mock_run.side_effect = _fake_run()
    engine = FFmpegEngine(ffmpeg_path="ffmpeg")
    result = engine.apply("[0:a][1:a]concat=n=2:v=0:a=1[out]", [b"one", b"two"], str(tmp_path), stage="concat")
    assert result == b"ID3mp3"

    cmd = mock_run.call_args[0][0]
    assert cmd[0] == "ffmpeg"
    inputs = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"]
    assert len(inputs) == 2
    assert all(p.startswith(str(tmp_path)) and "concat_" in p for p in inputs)
    assert open(inputs[0], "rb").read() == b"one"
    assert cmd[cmd.index("-filter_complex") + 1] == "[0:a][1:a]concat=n=2:v=0:a=1[out]"
    assert cmd[cmd.index("-map") + 1] == "[out]"
    assert cmd[cmd.index("-c:a") + 1] == "libmp3lame"
    assert cmd[cmd.index("-b:a") + 1] == "192k"
    assert cmd[cmd.index("-ar") + 1] == "44100"


@patch("episode_producer.engine.subprocess.run")
def test_apply_nonzero_exit_raises(mock_run, tmp_path):
    mock_run.side_effect = _fake_run(returncode=1, stderr="Invalid filtergraph\nError initializing")
    engine = FFmpegEngine(ffmpeg_path="ffmpeg")
    with pytest.raises(MixingStageError) as exc:
        engine.apply("[0:a]bogus[out]", [b"x"], str(tmp_path), stage="mixdown")
    assert exc.value.stage == "mixdown"
    assert "Error initializing" in exc.value.detail


@patch("episode_producer.engine.subprocess.run")
def test_apply_empty_output_raises(mock_run, tmp_path):
    mock_run.side_effect = _fake_run(output=b"")
    engine = FFmpegEngine(ffmpeg_path="ffmpeg")
    with pytest.raises(MixingStageError, match="no output"):
        engine.apply("[0:a]anull[out]", [b"x"], str(tmp_path), stage="loudnorm")


@patch("episode_producer.engine.subprocess.run")
def test_apply_missing_binary_is_a_stage_error(mock_run, tmp_path):
    mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "ffmpeg")
    engine = FFmpegEngine(ffmpeg_path="ffmpeg")
    with pytest.raises(MixingStageError) as exc:
        engine.apply("[0:a]anull[out]", [b"x"], str(tmp_path), stage="music")
    assert exc.value.stage == "music"
    assert "No such file" in exc.value.detail


def test_apply_unwritable_workdir_is_a_stage_error(tmp_path):
    engine = FFmpegEngine(ffmpeg_path="ffmpeg")
    with pytest.raises(MixingStageError) as exc:
        engine.apply("[0:a]anull[out]", [b"x"], str(tmp_path / "missing"), stage="dialogue")
    assert exc.value.stage == "dialogue"


@patch("episode_producer.engine.subprocess.run")
def test_apply_keeps_stderr_tail(mock_run, tmp_path):
    mock_run.side_effect = _fake_run(returncode=1, stderr="x" * 5000)
    engine = FFmpegEngine(ffmpeg_path="ffmpeg")
    with pytest.raises(MixingStageError) as exc:
        engine.apply("[0:a]anull[out]", [b"x"], str(tmp_path), stage="sfx")
    assert len(exc.value.detail) == 800


def test_engine_settings():
    engine = FFmpegEngine(ffmpeg_path="ffmpeg", bitrate="128k", sample_rate=48000, channels=1)
    cmd = engine._command("[0:a]anull[out]", ["in.wav"], "out.mp3")
    assert cmd[-1] == "out.mp3"
    assert ["-ac", "1"] == cmd[cmd.index("-ac"):cmd.index("-ac") + 2]
    assert "48000" in cmd
    assert "128k" in cmd
