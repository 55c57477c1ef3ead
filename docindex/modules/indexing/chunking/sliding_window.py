"""
Fixed-size sliding window chunker.

Windows are measured in characters. Chunk i starts at i * (chunk_size - chunk_overlap)
and spans up to chunk_size characters; the last window ends at the end of the
text and may be shorter. Consecutive windows share chunk_overlap characters,
so every character of the input falls inside at least one chunk.
"""

from typing import List

from .base import BaseChunker, ChunkConfig
from ..models import TextChunk


def _validate_window(chunk_size: int, chunk_overlap: int) -> None:
    if chunk_size < 1:
        raise ValueError(f"Chunk size: {chunk_size} must be at least 1")
    if chunk_overlap < 0:
        raise ValueError(f"Overlap size: {chunk_overlap} must be non-negative")
    if chunk_overlap >= chunk_size:
        raise ValueError(
            f"Overlap size: {chunk_overlap} must be smaller than chunk size: {chunk_size}")


def chunk(text: str, chunk_size: int, chunk_overlap: int) -> List[TextChunk]:
    """
    Split text into overlapping fixed-size windows

    Args:
        text: Text to split
        chunk_size: Window length in characters
        chunk_overlap: Characters shared by consecutive windows

    Returns:
        List of TextChunk objects; empty for empty text

    Raises:
        ValueError: If the window configuration cannot make progress
    """
    _validate_window(chunk_size, chunk_overlap)

    chunks: List[TextChunk] = []
    step = chunk_size - chunk_overlap
    start = 0

    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(TextChunk(
            index=len(chunks),
            text=text[start:end],
            start_offset=start,
            end_offset=end,
        ))
        if end == len(text):
            break
        start += step

    return chunks


class SlidingWindowChunker(BaseChunker):
    """Chunker producing overlapping character windows"""

    def __init__(self, config: ChunkConfig):
        super().__init__(config)
        _validate_window(config.chunk_size, config.chunk_overlap)

    def chunk_text(self, text: str) -> List[TextChunk]:
        return chunk(text, self.config.chunk_size, self.config.chunk_overlap)
