"""
Whisper-based transcription service implementations.

Both engines run ``whisper_runner`` as a child process so the model never
loads into the web process:

- ``WhisperSubprocessTranscriptionService`` starts one process per file.
- ``SupervisedWhisperTranscriptionService`` keeps one process in serve mode
  and restarts it when it dies, up to a bounded number of times.
"""

import asyncio
import codecs
import itertools
import json
import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Sequence

from ...application.ports.services.transcription_service import TranscriptionService
from ...core.config import TranscriptionSettings, get_settings
from ...core.exceptions import TranscriptionFailure
from ...core.structured_logger import log_event

logger = logging.getLogger(__name__)

RUNNER_MODULE = "audionotes.adapters.external.whisper_runner"

# A reply carries a whole transcript on one line
REPLY_LINE_LIMIT = 64 * 1024 * 1024
STDERR_CHUNK_SIZE = 4096
STDERR_PARTIAL_LIMIT = 16 * 1024


def build_runner_command(settings: TranscriptionSettings) -> List[str]:
    """Command line that starts the runner, without the audio path."""
    command = [settings.python_executable, "-m", RUNNER_MODULE, "--model", settings.model]
    if settings.language:
        command.extend(["--language", settings.language])
    return command


def is_benign_stderr(line: str, patterns: Sequence[str]) -> bool:
    return any(pattern in line for pattern in patterns)


def split_stderr(raw: str, patterns: Sequence[str]) -> List[str]:
    """Return the stderr lines that are not known harmless warnings.

    Benign lines are logged at debug level and dropped.
    """
    problems = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        if is_benign_stderr(line, patterns):
            logger.debug(f"Ignoring benign transcription warning: {line}")
            continue
        problems.append(line)
    return problems


def parse_transcript_output(stdout: str) -> str:
    """Extract the transcript from the runner's one-shot output.

    The last non-empty stdout line must be a JSON object with a ``text`` string.
    """
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines:
        raise TranscriptionFailure("Transcription process produced no output")
    try:
        payload = json.loads(lines[-1])
    except ValueError:
        raise TranscriptionFailure(
            "Transcription output could not be parsed",
            details={"output": lines[-1][:200]},
        )
    if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
        raise TranscriptionFailure(
            "Transcription output has no text field",
            details={"output": lines[-1][:200]},
        )
    text = payload["text"].strip()
    if not text:
        raise TranscriptionFailure("Transcription produced an empty transcript")
    return text


class WhisperSubprocessTranscriptionService(TranscriptionService):
    """Runs one whisper process per audio file."""

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        timeout_seconds: Optional[float] = None,
        benign_patterns: Optional[Sequence[str]] = None,
    ):
        settings = get_settings().transcription
        self._command = list(command) if command else build_runner_command(settings)
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.timeout_seconds
        self._benign_patterns = list(
            benign_patterns if benign_patterns is not None else settings.benign_stderr_patterns
        )

    async def transcribe(self, audio_file_path: str) -> str:
        logger.info(f"Starting transcription for: {audio_file_path}")
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                audio_file_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscriptionFailure(f"Could not start transcription process: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            await _kill(process)
            raise TranscriptionFailure(
                f"Transcription timed out after {self._timeout:g}s",
                details={"audio_path": audio_file_path},
            )

        problems = split_stderr(stderr.decode("utf-8", errors="replace"), self._benign_patterns)
        for line in problems:
            logger.warning(f"Transcription process stderr: {line}")

        if process.returncode != 0:
            raise TranscriptionFailure(
                f"Transcription process exited with code {process.returncode}: "
                f"{' '.join(problems) or 'no error output'}",
                details={"returncode": process.returncode},
            )

        text = parse_transcript_output(stdout.decode("utf-8", errors="replace"))
        logger.info(f"Transcription completed successfully ({len(text)} characters)")
        return text


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


class SupervisedWhisperTranscriptionService(TranscriptionService):
    """
    Keeps one whisper process alive in serve mode.

    Requests are JSON lines ``{"id", "path"}`` on the child's stdin; each call
    waits on a future resolved by the matching reply line. When the child
    exits, pending calls fail and the supervisor restarts it after an
    exponential backoff. Once ``max_restarts`` consecutive restarts have
    failed the service becomes unavailable and calls fail immediately.
    """

    STATE_STOPPED = "stopped"
    STATE_STARTING = "starting"
    STATE_RUNNING = "running"
    STATE_RESTARTING = "restarting"
    STATE_UNAVAILABLE = "unavailable"

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        timeout_seconds: Optional[float] = None,
        benign_patterns: Optional[Sequence[str]] = None,
        max_restarts: Optional[int] = None,
        restart_backoff_seconds: Optional[float] = None,
        reply_line_limit: int = REPLY_LINE_LIMIT,
    ):
        settings = get_settings().transcription
        self._command = list(command) if command else build_runner_command(settings) + ["--serve"]
        self._reply_line_limit = reply_line_limit
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.timeout_seconds
        self._benign_patterns = list(
            benign_patterns if benign_patterns is not None else settings.benign_stderr_patterns
        )
        self._max_restarts = max_restarts if max_restarts is not None else settings.max_restarts
        self._backoff = (
            restart_backoff_seconds if restart_backoff_seconds is not None else settings.restart_backoff_seconds
        )

        self._process: Optional[asyncio.subprocess.Process] = None
        self._supervisor_task: Optional[asyncio.Task] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._ids = itertools.count(1)
        self._ready = asyncio.Event()
        self._gave_up = asyncio.Event()
        self._recent_stderr: Deque[str] = deque(maxlen=20)
        self._write_lock = asyncio.Lock()
        self._restarts = 0
        self._closing = False
        self.state = self.STATE_STOPPED

    @property
    def is_available(self) -> bool:
        return self.state != self.STATE_UNAVAILABLE and not self._closing

    @property
    def restart_count(self) -> int:
        return self._restarts

    async def start(self) -> None:
        if self._supervisor_task is None and not self._closing:
            self.state = self.STATE_STARTING
            self._supervisor_task = asyncio.create_task(self._supervise())

    async def close(self) -> None:
        self._closing = True
        process = self._process
        if process is not None and process.returncode is None:
            if process.stdin is not None:
                process.stdin.close()
            try:
                await asyncio.wait_for(process.wait(), timeout=5)
            except asyncio.TimeoutError:
                await _kill(process)
        if self._supervisor_task is not None:
            self._supervisor_task.cancel()
            try:
                await self._supervisor_task
            except asyncio.CancelledError:
                pass
            self._supervisor_task = None
        self._fail_pending("Transcription engine is shutting down")
        self.state = self.STATE_STOPPED

    async def transcribe(self, audio_file_path: str) -> str:
        if not self.is_available:
            raise TranscriptionFailure("Transcription engine is unavailable")
        await self.start()
        await self._wait_until_ready()

        request_id = str(next(self._ids))
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._send({"id": request_id, "path": audio_file_path})
            text = await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(f"Transcription request {request_id} timed out; restarting engine")
            if self._process is not None:
                await _kill(self._process)
            raise TranscriptionFailure(
                f"Transcription timed out after {self._timeout:g}s",
                details={"audio_path": audio_file_path},
            )
        finally:
            self._pending.pop(request_id, None)

        text = text.strip()
        if not text:
            raise TranscriptionFailure("Transcription produced an empty transcript")
        self._restarts = 0
        return text

    async def _wait_until_ready(self) -> None:
        if self._ready.is_set():
            return
        waiters = [
            asyncio.create_task(self._ready.wait()),
            asyncio.create_task(self._gave_up.wait()),
        ]
        try:
            await asyncio.wait(waiters, timeout=self._timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        if not self._ready.is_set():
            if self._gave_up.is_set():
                raise TranscriptionFailure("Transcription engine is unavailable")
            raise TranscriptionFailure("Transcription engine did not become ready in time")

    async def _send(self, request: Dict[str, str]) -> None:
        process = self._process
        if process is None or process.stdin is None or process.returncode is not None:
            raise TranscriptionFailure("Transcription engine is not running")
        async with self._write_lock:
            try:
                process.stdin.write((json.dumps(request) + "\n").encode("utf-8"))
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                raise TranscriptionFailure(f"Transcription engine closed its input: {e}")

    async def _supervise(self) -> None:
        while not self._closing:
            returncode = await self._run_once()
            if self._closing:
                break

            self._fail_pending(f"Transcription engine exited with code {returncode}")
            if self._restarts >= self._max_restarts:
                self.state = self.STATE_UNAVAILABLE
                self._gave_up.set()
                log_event(
                    logger,
                    "transcription_engine_unavailable",
                    level=logging.ERROR,
                    restarts=self._restarts,
                    last_returncode=returncode,
                    stderr=list(self._recent_stderr)[-5:],
                )
                break

            delay = self._backoff * (2 ** self._restarts)
            self._restarts += 1
            self.state = self.STATE_RESTARTING
            logger.warning(
                f"Transcription engine exited with code {returncode}; "
                f"restart {self._restarts}/{self._max_restarts} in {delay:g}s"
            )
            await asyncio.sleep(delay)

    async def _run_once(self) -> Optional[int]:
        self._ready.clear()
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self._reply_line_limit,
            )
        except OSError as e:
            logger.error(f"Could not start transcription engine: {e}")
            return None

        self._process = process
        self.state = self.STATE_STARTING
        readers = [
            asyncio.create_task(self._read_replies(process)),
            asyncio.create_task(self._read_stderr(process)),
        ]
        try:
            returncode = await process.wait()
            await asyncio.gather(*readers, return_exceptions=True)
        except asyncio.CancelledError:
            for reader in readers:
                reader.cancel()
            await _kill(process)
            raise
        finally:
            self._ready.clear()
            self._process = None
        return returncode

    async def _read_replies(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        try:
            async for raw in process.stdout:
                self._handle_reply(raw.decode("utf-8", errors="replace").strip())
        except (ValueError, asyncio.LimitOverrunError) as e:
            # The stream cannot resume mid-line, so the child has to go
            logger.error(f"Transcription engine reply could not be read: {e}; restarting engine")
            self._ready.clear()
            self._fail_pending(f"Transcription engine reply could not be read: {e}")
            await _kill(process)

    def _handle_reply(self, line: str) -> None:
        if not line:
            return
        try:
            message = json.loads(line)
        except ValueError:
            logger.debug(f"Ignoring non-protocol output from transcription engine: {line[:200]}")
            return
        if not isinstance(message, dict):
            return

        if message.get("event") == "ready":
            self.state = self.STATE_RUNNING
            self._ready.set()
            logger.info("Transcription engine ready")
            return

        future = self._pending.get(str(message.get("id")))
        if future is None or future.done():
            logger.warning(f"Transcription engine reply matches no pending request: {line[:200]}")
            return
        if "error" in message:
            future.set_exception(TranscriptionFailure(f"Transcription failed: {message['error']}"))
        elif isinstance(message.get("text"), str):
            future.set_result(message["text"])
        else:
            future.set_exception(TranscriptionFailure("Transcription reply has no text field"))

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        """Log stderr in chunks; progress bars end lines with ``\\r`` only."""
        assert process.stderr is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        partial = ""
        while True:
            chunk = await process.stderr.read(STDERR_CHUNK_SIZE)
            if not chunk:
                break
            partial += decoder.decode(chunk)
            cut = max(partial.rfind("\n"), partial.rfind("\r"))
            if cut >= 0:
                self._log_stderr(partial[: cut + 1])
                partial = partial[cut + 1 :]
            elif len(partial) > STDERR_PARTIAL_LIMIT:
                self._log_stderr(partial)
                partial = ""
        self._log_stderr(partial + decoder.decode(b"", final=True))

    def _log_stderr(self, text: str) -> None:
        for line in split_stderr(text, self._benign_patterns):
            self._recent_stderr.append(line)
            logger.warning(f"Transcription engine stderr: {line}")

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(TranscriptionFailure(reason))
        self._pending.clear()


def create_transcription_service(settings: Optional[TranscriptionSettings] = None) -> TranscriptionService:
    """Build the engine selected by ``TRANSCRIPTION_MODE``."""
    settings = settings or get_settings().transcription
    if settings.mode == "persistent":
        return SupervisedWhisperTranscriptionService()
    return WhisperSubprocessTranscriptionService()
