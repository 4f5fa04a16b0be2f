"""Character-card PNG codec.

A card is a PNG image whose ``tEXt`` chunk keyed ``chara`` carries the
base64 of the character JSON. Chunk layout: 4-byte big-endian length,
4-byte type, data, CRC32 over type and data.
"""

from __future__ import annotations

import base64
import struct
import zlib
from typing import Iterator

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
CARD_KEYWORD = b"chara"
_CARD_KEYWORDS = (b"chara", b"ccv3")


def _chunks(png: bytes) -> Iterator[tuple[bytes, bytes]]:
    """Yield ``(type, data)`` for every chunk of *png*."""
    if not png.startswith(PNG_SIGNATURE):
        raise ValueError("Not a PNG image")
    pos = len(PNG_SIGNATURE)
    while pos < len(png):
        if pos + 8 > len(png):
            raise ValueError("Truncated PNG chunk header")
        length, ctype = struct.unpack(">I4s", png[pos:pos + 8])
        end = pos + 8 + length + 4
        if end > len(png):
            raise ValueError(f"Truncated PNG chunk {ctype!r}")
        yield ctype, png[pos + 8:pos + 8 + length]
        pos = end
        if ctype == b"IEND":
            return


def _encode_chunk(ctype: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(ctype + data) & 0xFFFFFFFF
    return struct.pack(">I4s", len(data), ctype) + data + struct.pack(">I", crc)


def _text_keyword(data: bytes) -> bytes:
    return data.split(b"\0", 1)[0]


def read_card_json(png: bytes) -> str | None:
    """Return the character JSON embedded in *png*, or None if there is none."""
    for ctype, data in _chunks(png):
        if ctype == b"tEXt" and _text_keyword(data) == CARD_KEYWORD:
            _, _, text = data.partition(b"\0")
            return base64.b64decode(text).decode("utf-8")
    return None


def write_card_json(png: bytes, json_text: str) -> bytes:
    """Return *png* with its embedded character JSON replaced by *json_text*.

    Existing ``chara``/``ccv3`` text chunks are dropped; the new chunk goes
    right before ``IEND``.
    """
    payload = CARD_KEYWORD + b"\0" + base64.b64encode(json_text.encode("utf-8"))
    out = [PNG_SIGNATURE]
    wrote = False
    for ctype, data in _chunks(png):
        if ctype == b"tEXt" and _text_keyword(data) in _CARD_KEYWORDS:
            continue
        if ctype == b"IEND":
            out.append(_encode_chunk(b"tEXt", payload))
            wrote = True
        out.append(_encode_chunk(ctype, data))
    if not wrote:
        raise ValueError("PNG has no IEND chunk")
    return b"".join(out)
