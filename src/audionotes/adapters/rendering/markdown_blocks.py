"""
Minimal Markdown block parser for the notes PDF.

Understands the subset the note prompt asks the model to produce: ATX
headings, paragraphs, bulleted and numbered lists, horizontal rules and
inline bold, italic and code spans. Inline markup is converted to the
mini-HTML accepted by reportlab's ``Paragraph``.
"""

import re
from dataclasses import dataclass
from typing import List, Optional
from xml.sax.saxutils import escape

HEADING = "heading"
PARAGRAPH = "paragraph"
BULLET = "bullet"
NUMBERED = "numbered"
RULE = "rule"

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
_BULLET_RE = re.compile(r"^(\s*)[-*+]\s+(.*)$")
_NUMBERED_RE = re.compile(r"^(\s*)(\d+)[.)]\s+(.*)$")
_RULE_RE = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$")

_BOLD_RE = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*|__(?=\S)(.+?)(?<=\S)__")
_ITALIC_RE = re.compile(r"(?<![\*\w])\*(?=[^\s*])(.+?)(?<=[^\s*])\*(?!\*)")


@dataclass
class Block:
    kind: str
    text: str = ""
    level: int = 0
    number: Optional[int] = None

    def append(self, more: str) -> None:
        self.text = f"{self.text} {more}" if self.text else more


def parse_markdown(markdown_text: str) -> List[Block]:
    """Split Markdown into blocks; heading levels deeper than 3 become level 3."""
    blocks: List[Block] = []
    current: Optional[Block] = None

    for raw_line in (markdown_text or "").splitlines():
        line = raw_line.rstrip()
        if not line.strip():
            current = None
            continue

        if _RULE_RE.match(line):
            blocks.append(Block(RULE))
            current = None
            continue

        heading = _HEADING_RE.match(line.strip())
        if heading:
            blocks.append(Block(HEADING, heading.group(2), level=min(len(heading.group(1)), 3)))
            current = None
            continue

        bullet = _BULLET_RE.match(line)
        if bullet:
            current = Block(BULLET, bullet.group(2).strip(), level=_indent_level(bullet.group(1)))
            blocks.append(current)
            continue

        numbered = _NUMBERED_RE.match(line)
        if numbered:
            current = Block(
                NUMBERED,
                numbered.group(3).strip(),
                level=_indent_level(numbered.group(1)),
                number=int(numbered.group(2)),
            )
            blocks.append(current)
            continue

        # Continuation of the previous paragraph or list item
        if current is not None:
            current.append(line.strip())
        else:
            current = Block(PARAGRAPH, line.strip())
            blocks.append(current)

    return blocks


def _indent_level(indent: str) -> int:
    return len(indent.replace("\t", "    ")) // 2


def inline_markup(text: str) -> str:
    """Convert inline Markdown to reportlab paragraph markup, escaping the rest."""
    parts = text.split("`")
    # An unmatched backtick leaves the last part as plain text
    if len(parts) % 2 == 0:
        parts[-2] = parts[-2] + "`" + parts.pop()

    converted = []
    for index, part in enumerate(parts):
        if index % 2 == 1:
            converted.append(f'<font face="Courier">{escape(part)}</font>')
            continue
        part = escape(part)
        part = _BOLD_RE.sub(lambda m: f"<b>{m.group(1) or m.group(2)}</b>", part)
        part = _ITALIC_RE.sub(lambda m: f"<i>{m.group(1)}</i>", part)
        converted.append(part)
    return "".join(converted)
