# core/text_chunks.py
import re
from typing import List

# Zero-width break points: after CJK/ASCII sentence enders or a newline, and after
# "." only when whitespace follows (keeps "3.5" intact).
_SENTENCE_BREAK = re.compile(r"(?<=[。！？!?\n])|(?<=\.)(?=\s)")


def split_sentences(text: str) -> List[str]:
    return [s for s in _SENTENCE_BREAK.split(text) if s]


def split_transcript(text: str, max_chars: int = 8000) -> List[str]:
    """
    Greedy sentence packing into chunks of at most `max_chars`.
    - Never cuts inside a sentence; a single sentence longer than `max_chars`
      becomes its own oversized chunk.
    - Nothing is dropped: "".join(chunks) == text.
    """
    if len(text) <= max_chars:
        return [text] if text else []

    chunks: List[str] = []
    buf = ""
    for sentence in split_sentences(text):
        if buf and len(buf) + len(sentence) > max_chars:
            chunks.append(buf)
            buf = sentence
        else:
            buf += sentence
    if buf:
        chunks.append(buf)
    return chunks
