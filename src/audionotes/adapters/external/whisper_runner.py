"""
Speech-to-text child process backed by openai-whisper.

Run by the transcription services as a separate process so the model and
its memory stay out of the web process.

One-shot mode transcribes a single file and prints one JSON object::

    python -m audionotes.adapters.external.whisper_runner --model base audio.webm
    {"text": "..."}

Serve mode loads the model once, prints ``{"event": "ready"}`` and then
answers one JSON line per request line read from stdin::

    {"id": "1", "path": "audio.webm"}  ->  {"id": "1", "text": "..."}
                                       ->  {"id": "1", "error": "..."}

Nothing but protocol lines is written to stdout; whisper's own output and
warnings go to stderr.
"""

import argparse
import contextlib
import json
import sys
from typing import Any, Dict, Optional, TextIO


def load_model(model_name: str):
    import whisper

    with contextlib.redirect_stdout(sys.stderr):
        return whisper.load_model(model_name)


def transcribe_file(model, audio_path: str, language: Optional[str] = None) -> str:
    options: Dict[str, Any] = {"verbose": None}
    if language:
        options["language"] = language
    with contextlib.redirect_stdout(sys.stderr):
        result = model.transcribe(audio_path, **options)
    return (result.get("text") or "").strip()


def _emit(stream: TextIO, payload: Dict[str, Any]) -> None:
    stream.write(json.dumps(payload) + "\n")
    stream.flush()


def serve(model, language: Optional[str], stdin: TextIO, stdout: TextIO) -> int:
    _emit(stdout, {"event": "ready"})
    for line in stdin:
        line = line.strip()
        if not line:
            continue
        try:
            request = json.loads(line)
            request_id = request["id"]
            audio_path = request["path"]
        except (ValueError, KeyError, TypeError) as e:
            _emit(stdout, {"id": None, "error": f"Malformed request: {e}"})
            continue
        try:
            text = transcribe_file(model, audio_path, request.get("language") or language)
            _emit(stdout, {"id": request_id, "text": text})
        except Exception as e:  # noqa: BLE001 - reported to the parent, process stays up
            _emit(stdout, {"id": request_id, "error": f"{type(e).__name__}: {e}"})
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Whisper transcription runner")
    parser.add_argument("audio_path", nargs="?", help="Audio file to transcribe (one-shot mode)")
    parser.add_argument("--model", default="base", help="Whisper model name")
    parser.add_argument("--language", default=None, help="Force a language code")
    parser.add_argument("--serve", action="store_true", help="Answer JSON requests on stdin")
    args = parser.parse_args(argv)

    if not args.serve and not args.audio_path:
        parser.error("audio_path is required unless --serve is given")

    protocol_out = sys.stdout
    model = load_model(args.model)

    if args.serve:
        return serve(model, args.language, sys.stdin, protocol_out)

    try:
        text = transcribe_file(model, args.audio_path, args.language)
    except Exception as e:  # noqa: BLE001 - exit status carries the failure
        print(f"Transcription error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    _emit(protocol_out, {"text": text})
    return 0


if __name__ == "__main__":
    sys.exit(main())
