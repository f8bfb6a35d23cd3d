"""Outbound email domain entity."""

from dataclasses import dataclass, field
from typing import List, Tuple


SUCCESS_SUBJECT = "Your Audio Notes are Ready"
FAILURE_SUBJECT = "Error Processing Your Audio"

PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class Attachment:
    """A binary email attachment held in memory."""

    filename: str
    content: bytes
    content_type: str = PDF_CONTENT_TYPE

    @property
    def maintype_subtype(self) -> Tuple[str, str]:
        maintype, _, subtype = self.content_type.partition("/")
        return maintype or "application", subtype or "octet-stream"


@dataclass(frozen=True)
class OutboundEmail:
    """A plain-text email with ordered attachments for one recipient."""

    recipient: str
    subject: str
    body: str
    attachments: List[Attachment] = field(default_factory=list)

    @property
    def attachment_names(self) -> List[str]:
        return [attachment.filename for attachment in self.attachments]


def success_body(attachment_names: List[str]) -> str:
    """Body text for a completed job."""
    if not attachment_names:
        return (
            "Your audio has been processed. No documents were requested, "
            "so nothing is attached to this email."
        )
    described = []
    for name in attachment_names:
        if name.startswith("notes-"):
            described.append("- Structured notes PDF")
        else:
            described.append("- Full transcription PDF")
    return "Your audio has been processed. Attached you will find:\n\n" + "\n".join(described)


def failure_body(error_message: str = "") -> str:
    """Body text for a failed job."""
    details = f"\n\n{error_message}" if error_message else ""
    return (
        "We encountered an error while processing your audio."
        f"{details}\n\n"
        "Please try again or contact support if the issue persists."
    )
