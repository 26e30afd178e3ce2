"""
Ask search engines not to index proxied pages.
"""

from typing import Iterable, Iterator

META_ROBOTS_TAG = '<meta name="ROBOTS" content="NOINDEX, NOFOLLOW"/>'


def meta_robots_stream():
    """
    Create a text transform that puts the meta tag right after the first ``<head>``.

    Only a literal ``<head>`` inside a single chunk is found; pages without one
    pass through unchanged.
    """

    def transform(chunks: Iterable[str]) -> Iterator[str]:
        written = False
        for chunk in chunks:
            if not written:
                chunk = chunk.replace("<head>", "<head>\n" + META_ROBOTS_TAG, 1)
            if "<head>" in chunk:
                written = True
            yield chunk

    return transform
