"""
ESC/POS byte encoding for print primitives.
"""

from typing import Iterable

from arbi_pos.app.printing.primitives import (
    Align,
    Feed,
    FontStyle,
    Init,
    PrintCommand,
    PrintJob,
    SetAlign,
    SetFont,
    WriteText,
)

ESC = b"\x1b"
GS = b"\x1d"

ALIGN_CODES = {Align.LEFT: 0, Align.CENTER: 1, Align.RIGHT: 2}


def encode_init() -> bytes:
    return ESC + b"@"


def encode_align(mode: Align) -> bytes:
    return ESC + b"a" + bytes([ALIGN_CODES[mode]])


def encode_font(style: FontStyle) -> bytes:
    """GS ! n selects character size, ESC E n toggles bold."""
    size = ((style.width_times & 0x07) << 4) | (style.height_times & 0x07)
    return GS + b"!" + bytes([size]) + ESC + b"E" + bytes([1 if style.bold else 0])


def encode_text(text: str, encoding: str = "cp437") -> bytes:
    return text.encode(encoding, errors="replace")


def encode_feed(lines: int) -> bytes:
    return ESC + b"d" + bytes([max(0, min(lines, 255))])


def encode_command(command: PrintCommand, encoding: str = "cp437") -> bytes:
    if isinstance(command, Init):
        return encode_init()
    if isinstance(command, SetAlign):
        return encode_align(command.mode)
    if isinstance(command, SetFont):
        return encode_font(command.style)
    if isinstance(command, WriteText):
        return encode_text(command.text, encoding)
    if isinstance(command, Feed):
        return encode_feed(command.lines)
    raise TypeError(f"Unknown print command: {command!r}")


def encode_commands(commands: Iterable[PrintCommand], encoding: str = "cp437") -> bytes:
    return b"".join(encode_command(command, encoding) for command in commands)


def encode_job(job: PrintJob, encoding: str = "cp437") -> bytes:
    """Whole job as one byte stream, e.g. for spooling or inspection."""
    return encode_commands(job.commands, encoding)
