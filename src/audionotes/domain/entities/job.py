"""Job domain entity: one submitter's audio-to-notes request."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class Job:
    """An immutable unit of work owned by the job queue until it completes."""

    audio_path: Path
    recipient: str
    include_transcript_pdf: bool = True
    include_notes_pdf: bool = True
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def requested_outputs(self, notes_enabled: bool) -> List[str]:
        """Documents this job should produce.

        With note generation disabled only the transcript is produced, whatever
        the request asked for.
        """
        if not notes_enabled:
            return ["transcription"]
        outputs = []
        if self.include_transcript_pdf:
            outputs.append("transcription")
        if self.include_notes_pdf:
            outputs.append("notes")
        return outputs


@dataclass(frozen=True)
class JobOutcome:
    """Result of running one job through the pipeline."""

    job_id: str
    recipient: str
    succeeded: bool
    attachment_names: List[str] = field(default_factory=list)
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    failed_stage: Optional[str] = None
