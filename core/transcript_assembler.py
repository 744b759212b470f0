# core/transcript_assembler.py
from pathlib import Path
from typing import Callable, Sequence, Tuple
from core.capabilities import SpeechToText
from core.entities import Transcript
from core.transcriber import transcribe_segment
import logging

logger = logging.getLogger(__name__)

BAND_START = 30
BAND_END = 85


def segment_progress(index: int, total: int) -> Tuple[int, int]:
    """
    (start, end) percentages for segment `index` of `total`. Each segment owns an
    equal slice of [BAND_START, BAND_END]; the last one ends exactly on BAND_END.
    """
    span = BAND_END - BAND_START
    start = BAND_START + (index * span) // total
    end = BAND_START + ((index + 1) * span) // total
    return start, end


async def assemble(
    stt: SpeechToText,
    segments: Sequence[Path],
    on_progress: Callable[[int], None],
    **transcribe_kwargs,
) -> Transcript:
    """
    Transcribe segments one at a time, in order, and fold the texts together.
    Any segment failure aborts the whole transcript.
    """
    total = len(segments)
    transcript = Transcript()
    for i, path in enumerate(segments):
        start, end = segment_progress(i, total)
        on_progress(start)
        text = await transcribe_segment(stt, path, **transcribe_kwargs)
        transcript = transcript.extend(text)
        logger.info("assemble.segment done=%d/%d chars=%d", i + 1, total, len(text))
        on_progress(end)
    return transcript
