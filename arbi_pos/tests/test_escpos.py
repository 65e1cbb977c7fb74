"""
ESC/POS encoding tests.
"""

from arbi_pos.app.printing import escpos
from arbi_pos.app.printing.primitives import EMPHASIS, NORMAL, Align, DocumentKind, JobBuilder


def test_primitive_byte_codes():
    assert escpos.encode_init() == b"\x1b@"
    assert escpos.encode_align(Align.CENTER) == b"\x1ba\x01"
    assert escpos.encode_feed(3) == b"\x1bd\x03"
    assert escpos.encode_font(NORMAL) == b"\x1d!\x00\x1bE\x00"
    assert escpos.encode_font(EMPHASIS) == b"\x1d!\x11\x1bE\x01"


def test_text_outside_codepage_is_replaced():
    assert escpos.encode_text("Rs. 10\n") == b"Rs. 10\n"
    assert escpos.encode_text("₹") == b"?"


def test_feed_is_clamped_to_one_byte():
    assert escpos.encode_feed(300) == b"\x1bd\xff"


def test_job_encodes_in_command_order():
    job = JobBuilder(DocumentKind.TEST).align(Align.LEFT).line("Hi").feed(2).build()

    assert escpos.encode_job(job) == b"\x1b@" + b"\x1ba\x00" + b"Hi\n" + b"\x1bd\x02"
