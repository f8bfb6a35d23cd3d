"""
Transcription process tests, using small Python scripts in place of whisper.
"""

import sys
import textwrap

import pytest

from audionotes.adapters.external.transcription_service_whisper import (
    RUNNER_MODULE,
    SupervisedWhisperTranscriptionService,
    WhisperSubprocessTranscriptionService,
    build_runner_command,
    create_transcription_service,
    parse_transcript_output,
    split_stderr,
)
from audionotes.core.config import TranscriptionSettings
from audionotes.core.exceptions import TranscriptionFailure

ONE_SHOT_SCRIPT = """
import json, os, sys, time

path = sys.argv[1]
name = os.path.basename(path)
if "benign" in name:
    print("UserWarning: FP16 is not supported on CPU; using FP32 instead", file=sys.stderr)
if "crash" in name:
    print("RuntimeError: cannot decode audio", file=sys.stderr)
    sys.exit(2)
if "garbage" in name:
    print("this is not json")
    sys.exit(0)
if "blank" in name:
    print(json.dumps({"text": "   "}))
    sys.exit(0)
if "slow" in name:
    time.sleep(30)
print("Detected language: English")
print(json.dumps({"text": " transcript of " + name + " "}))
"""

SERVE_SCRIPT = """
import json, sys

print(json.dumps({"event": "ready"}), flush=True)
for line in sys.stdin:
    request = json.loads(line)
    path = request["path"]
    if "crash" in path:
        sys.exit(3)
    if "bad" in path:
        print(json.dumps({"id": request["id"], "error": "decode failed"}), flush=True)
        continue
    if "long" in path:
        sys.stderr.write("." * 100000)
        sys.stderr.flush()
        print(json.dumps({"id": request["id"], "text": "word " * 30000}), flush=True)
        continue
    print("progress noise", flush=True)
    print(json.dumps({"id": request["id"], "text": "heard " + path}), flush=True)
"""

DYING_SCRIPT = """
import sys

print("ImportError: no module named whisper", file=sys.stderr)
sys.exit(3)
"""


@pytest.fixture
def script(tmp_path):
    def write(source: str, name: str = "runner.py"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(source))
        return [sys.executable, str(path)]

    return write


def test_build_runner_command_includes_model_and_language():
    settings = TranscriptionSettings(model="small", language="en", python_executable="/usr/bin/python3")

    assert build_runner_command(settings) == [
        "/usr/bin/python3",
        "-m",
        RUNNER_MODULE,
        "--model",
        "small",
        "--language",
        "en",
    ]


def test_split_stderr_drops_benign_lines():
    raw = "FP16 is not supported on CPU; using FP32 instead\n\nCUDA out of memory\n"

    assert split_stderr(raw, ["FP16 is not supported on CPU"]) == ["CUDA out of memory"]


@pytest.mark.parametrize(
    "stdout",
    ["", "plain text\n", '{"transcript": "x"}\n', '{"text": "  "}\n'],
)
def test_parse_transcript_output_rejects_unusable_output(stdout):
    with pytest.raises(TranscriptionFailure):
        parse_transcript_output(stdout)


def test_parse_transcript_output_reads_last_line():
    assert parse_transcript_output('loading\n{"text": " Hello there. "}\n') == "Hello there."


def test_create_transcription_service_selects_engine_by_mode():
    assert isinstance(
        create_transcription_service(TranscriptionSettings(mode="oneshot")),
        WhisperSubprocessTranscriptionService,
    )
    assert isinstance(
        create_transcription_service(TranscriptionSettings(mode="persistent")),
        SupervisedWhisperTranscriptionService,
    )


@pytest.mark.asyncio
async def test_one_shot_returns_trimmed_transcript(script):
    service = WhisperSubprocessTranscriptionService(command=script(ONE_SHOT_SCRIPT), timeout_seconds=20)

    assert await service.transcribe("lecture.webm") == "transcript of lecture.webm"


@pytest.mark.asyncio
async def test_one_shot_ignores_benign_warnings(script):
    service = WhisperSubprocessTranscriptionService(
        command=script(ONE_SHOT_SCRIPT),
        timeout_seconds=20,
        benign_patterns=["FP16 is not supported on CPU"],
    )

    assert await service.transcribe("benign.webm") == "transcript of benign.webm"


@pytest.mark.asyncio
async def test_one_shot_nonzero_exit_reports_stderr(script):
    service = WhisperSubprocessTranscriptionService(command=script(ONE_SHOT_SCRIPT), timeout_seconds=20)

    with pytest.raises(TranscriptionFailure) as exc_info:
        await service.transcribe("crash.webm")

    assert "exited with code 2" in exc_info.value.message
    assert "cannot decode audio" in exc_info.value.message


@pytest.mark.parametrize("name", ["garbage.webm", "blank.webm"])
@pytest.mark.asyncio
async def test_one_shot_unusable_output_fails(script, name):
    service = WhisperSubprocessTranscriptionService(command=script(ONE_SHOT_SCRIPT), timeout_seconds=20)

    with pytest.raises(TranscriptionFailure):
        await service.transcribe(name)


@pytest.mark.asyncio
async def test_one_shot_timeout_kills_process(script):
    service = WhisperSubprocessTranscriptionService(command=script(ONE_SHOT_SCRIPT), timeout_seconds=0.5)

    with pytest.raises(TranscriptionFailure) as exc_info:
        await service.transcribe("slow.webm")

    assert "timed out" in exc_info.value.message


@pytest.mark.asyncio
async def test_one_shot_missing_executable_fails(tmp_path):
    service = WhisperSubprocessTranscriptionService(command=[str(tmp_path / "missing-binary")], timeout_seconds=5)

    with pytest.raises(TranscriptionFailure) as exc_info:
        await service.transcribe("lecture.webm")

    assert "Could not start" in exc_info.value.message


@pytest.mark.asyncio
async def test_supervised_engine_answers_requests(script):
    service = SupervisedWhisperTranscriptionService(
        command=script(SERVE_SCRIPT), timeout_seconds=20, max_restarts=2, restart_backoff_seconds=0.01
    )
    try:
        await service.start()
        assert await service.transcribe("one.webm") == "heard one.webm"
        assert await service.transcribe("two.webm") == "heard two.webm"
        assert service.state == service.STATE_RUNNING
    finally:
        await service.close()

    assert service.state == service.STATE_STOPPED


@pytest.mark.asyncio
async def test_supervised_engine_error_reply_fails_only_that_request(script):
    service = SupervisedWhisperTranscriptionService(
        command=script(SERVE_SCRIPT), timeout_seconds=20, max_restarts=2, restart_backoff_seconds=0.01
    )
    try:
        with pytest.raises(TranscriptionFailure) as exc_info:
            await service.transcribe("bad.webm")
        assert "decode failed" in exc_info.value.message
        assert await service.transcribe("good.webm") == "heard good.webm"
        assert service.restart_count == 0
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_supervised_engine_restarts_after_crash(script):
    service = SupervisedWhisperTranscriptionService(
        command=script(SERVE_SCRIPT), timeout_seconds=20, max_restarts=2, restart_backoff_seconds=0.01
    )
    try:
        with pytest.raises(TranscriptionFailure) as exc_info:
            await service.transcribe("crash.webm")
        assert "exited with code 3" in exc_info.value.message

        assert await service.transcribe("after.webm") == "heard after.webm"
        assert service.is_available
        # A successful request resets the consecutive restart budget
        assert service.restart_count == 0
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_supervised_engine_becomes_unavailable_after_max_restarts(script):
    service = SupervisedWhisperTranscriptionService(
        command=script(DYING_SCRIPT), timeout_seconds=20, max_restarts=1, restart_backoff_seconds=0.01
    )
    try:
        with pytest.raises(TranscriptionFailure) as exc_info:
            await service.transcribe("lecture.webm")
        assert "unavailable" in exc_info.value.message
        assert service.state == service.STATE_UNAVAILABLE
        assert not service.is_available

        with pytest.raises(TranscriptionFailure):
            await service.transcribe("again.webm")
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_supervised_engine_reads_replies_longer_than_default_stream_limit(script):
    service = SupervisedWhisperTranscriptionService(
        command=script(SERVE_SCRIPT), timeout_seconds=10, max_restarts=2, restart_backoff_seconds=0.01
    )
    try:
        text = await service.transcribe("long.webm")
        assert len(text) > 64 * 1024
        assert text.startswith("word word")
        assert service.restart_count == 0
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_supervised_engine_restarts_when_a_reply_cannot_be_read(script):
    service = SupervisedWhisperTranscriptionService(
        command=script(SERVE_SCRIPT),
        timeout_seconds=20,
        max_restarts=2,
        restart_backoff_seconds=0.01,
        reply_line_limit=1024,
    )
    try:
        with pytest.raises(TranscriptionFailure) as exc_info:
            await service.transcribe("long.webm")
        assert "could not be read" in exc_info.value.message

        assert await service.transcribe("after.webm") == "heard after.webm"
        assert service.is_available
    finally:
        await service.close()
