"""Word-window text chunking with named size/overlap profiles.

Splits raw text into overlapping windows of whitespace-delimited words.
Window size and overlap come from a :class:`ChunkProfile`, selected by name
through :func:`resolve_chunk_profile`:

    short_form   200 words, 30 overlap    (quizzes, prompts, short notes)
    default      400 words, 60 overlap    (lecture notes, handouts)
    long_book    800 words, 120 overlap   (textbook chapters, long readings)

Consecutive windows share ``overlap_words`` words so a passage spanning a
boundary is fully contained in at least one chunk.  Chunking is purely
deterministic: the same text and profile always yield the same chunks.
"""

from __future__ import annotations

import structlog

from coursekb.models.records import ChunkProfile, ChunkProfileName

logger = structlog.get_logger(logger_name=__name__)

_PROFILES: dict[ChunkProfileName, ChunkProfile] = {
    ChunkProfileName.SHORT_FORM: ChunkProfile(size_words=200, overlap_words=30),
    ChunkProfileName.DEFAULT: ChunkProfile(size_words=400, overlap_words=60),
    ChunkProfileName.LONG_BOOK: ChunkProfile(size_words=800, overlap_words=120),
}


def resolve_chunk_profile(name: str | ChunkProfileName | None) -> ChunkProfile:
    """Return the profile registered under *name*.

    Never fails: ``None``, blank and unrecognised names all resolve to the
    ``default`` profile.  Matching is on the exact profile value.
    """
    if isinstance(name, ChunkProfileName):
        return _PROFILES[name]
    if name:
        try:
            return _PROFILES[ChunkProfileName(name)]
        except ValueError:
            logger.debug("chunk_profile_fallback", requested=name, used="default")
    return _PROFILES[ChunkProfileName.DEFAULT]


def resolve_chunk_profile_name(name: str | ChunkProfileName | None) -> ChunkProfileName:
    """Like :func:`resolve_chunk_profile` but returns the resolved name."""
    if isinstance(name, ChunkProfileName):
        return name
    try:
        return ChunkProfileName(name) if name else ChunkProfileName.DEFAULT
    except ValueError:
        return ChunkProfileName.DEFAULT


class TextChunker:
    """Splits text into overlapping word windows.

    Stateless; one instance can be shared by every pipeline.
    """

    def chunk(self, text: str, profile: ChunkProfile) -> list[str]:
        """Split *text* into chunk strings under *profile*.

        Words are separated by any run of whitespace and re-joined with a
        single space, so line breaks inside a chunk are not preserved.

        Returns
        -------
        list[str]
            ``[]`` for text with no words, one chunk when the text fits in
            a single window, otherwise one chunk per window from
            :meth:`windows`.
        """
        words = text.split()
        if not words:
            return []

        chunks = [
            " ".join(words[start:end])
            for start, end in self.windows(len(words), profile)
        ]
        logger.debug(
            "text_chunked",
            words=len(words),
            chunks=len(chunks),
            size_words=profile.size_words,
            overlap_words=profile.overlap_words,
        )
        return chunks

    @staticmethod
    def windows(total_words: int, profile: ChunkProfile) -> list[tuple[int, int]]:
        """Return half-open ``[start, end)`` word ranges covering *total_words*.

        The first window starts at 0; each following window starts
        ``overlap_words`` before the previous end.  The last window ends
        exactly at *total_words*.  Because ``overlap_words < size_words``
        every window advances by at least one word.

        >>> TextChunker.windows(1000, ChunkProfile(size_words=400, overlap_words=60))
        [(0, 400), (340, 740), (680, 1000)]
        """
        if total_words <= 0:
            return []

        spans: list[tuple[int, int]] = []
        start = 0
        while True:
            end = min(start + profile.size_words, total_words)
            spans.append((start, end))
            if end >= total_words:
                return spans
            start = end - profile.overlap_words
