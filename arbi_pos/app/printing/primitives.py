"""
Printer primitives and the PrintJob model.

A PrintJob is an ordered tuple of primitive commands for one document.
Jobs are built with JobBuilder and are immutable once built.
"""

import enum
from dataclasses import dataclass
from typing import List, Tuple, Union


class Align(str, enum.Enum):
    LEFT = "LEFT"
    CENTER = "CENTER"
    RIGHT = "RIGHT"


class DocumentKind(str, enum.Enum):
    RECEIPT = "RECEIPT"
    PRE_RECEIPT = "PRE_RECEIPT"
    KOT = "KOT"
    BOT = "BOT"
    CREDIT_STATEMENT = "CREDIT_STATEMENT"
    DAILY_SUMMARY = "DAILY_SUMMARY"
    SETTLEMENT_RECEIPT = "SETTLEMENT_RECEIPT"
    TEST = "TEST"


@dataclass(frozen=True)
class FontStyle:
    """Character size multipliers are 0 for normal and 1 for double."""
    width_times: int = 0
    height_times: int = 0
    bold: bool = False


NORMAL = FontStyle()
EMPHASIS = FontStyle(width_times=1, height_times=1, bold=True)


@dataclass(frozen=True)
class Init:
    pass


@dataclass(frozen=True)
class SetAlign:
    mode: Align


@dataclass(frozen=True)
class SetFont:
    style: FontStyle


@dataclass(frozen=True)
class WriteText:
    text: str


@dataclass(frozen=True)
class Feed:
    lines: int


PrintCommand = Union[Init, SetAlign, SetFont, WriteText, Feed]


@dataclass(frozen=True)
class PrintJob:
    kind: DocumentKind
    commands: Tuple[PrintCommand, ...]
    has_body: bool = True

    def __len__(self):
        return len(self.commands)

    def text_lines(self) -> List[str]:
        """All printed text, split into lines."""
        text = "".join(cmd.text for cmd in self.commands if isinstance(cmd, WriteText))
        return text.splitlines()

    def render(self) -> str:
        return "\n".join(self.text_lines())


class JobBuilder:
    """Accumulates primitives for one document."""

    def __init__(self, kind: DocumentKind, width: int = 32):
        self.kind = kind
        self.width = width
        self._commands: List[PrintCommand] = [Init()]
        self._has_body = False

    def align(self, mode: Align) -> "JobBuilder":
        self._commands.append(SetAlign(mode))
        return self

    def font(self, style: FontStyle) -> "JobBuilder":
        self._commands.append(SetFont(style))
        return self

    def line(self, text: str = "") -> "JobBuilder":
        self._commands.append(WriteText(f"{text}\n"))
        return self

    def body_line(self, text: str) -> "JobBuilder":
        """A line that carries document content rather than boilerplate."""
        self._has_body = True
        return self.line(text)

    def emphasized(self, text: str) -> "JobBuilder":
        return self.font(EMPHASIS).line(text).font(NORMAL)

    def rule(self, char: str = "-") -> "JobBuilder":
        return self.line(char * self.width)

    def columns(self, left: str, right: str) -> str:
        """Left text and right text pushed to opposite edges."""
        room = max(self.width - len(right) - 1, 1)
        return f"{left[:room]:<{room}} {right}"

    def feed(self, lines: int) -> "JobBuilder":
        self._commands.append(Feed(lines))
        return self

    def build(self) -> PrintJob:
        return PrintJob(kind=self.kind, commands=tuple(self._commands), has_body=self._has_body)
