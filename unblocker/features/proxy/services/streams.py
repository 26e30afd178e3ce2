"""
Body stream helpers.

A body stream is any iterable of chunks. Text transforms work on ``str``
chunks; the proxy decodes once before the first transform and encodes once at
the end. ``surrogateescape`` keeps bytes that are not valid in the charset
byte-for-byte intact through the round trip.
"""

from __future__ import annotations

import codecs
import logging
from typing import Callable, Iterable, Iterator

logger = logging.getLogger(__name__)

TextTransform = Callable[[Iterable[str]], Iterator[str]]


def _codec_name(encoding: str) -> str:
    try:
        return codecs.lookup(encoding).name
    except LookupError:
        logger.debug(f"Unknown charset {encoding!r}, falling back to utf-8")
        return "utf-8"


def decode_chunks(chunks: Iterable[bytes], encoding: str = "utf-8") -> Iterator[str]:
    """Decode byte chunks to text; multi-byte characters may span chunks."""
    decoder = codecs.getincrementaldecoder(_codec_name(encoding))(errors="surrogateescape")
    for chunk in chunks:
        if isinstance(chunk, str):
            yield chunk
            continue
        text = decoder.decode(chunk)
        if text:
            yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


def encode_chunks(chunks: Iterable[str], encoding: str = "utf-8") -> Iterator[bytes]:
    encoder = codecs.getincrementalencoder(_codec_name(encoding))(errors="surrogateescape")
    for chunk in chunks:
        if isinstance(chunk, bytes):
            yield chunk
            continue
        data = encoder.encode(chunk)
        if data:
            yield data
    tail = encoder.encode("", final=True)
    if tail:
        yield tail
