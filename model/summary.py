# model/summary.py
from typing import Tuple
from pydantic import BaseModel, ConfigDict

DEFAULT_CATEGORY = "universal"


class SummaryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str  # Markdown, starts with a "# " title
    highlights: Tuple[str, ...] = ()
    category: str = DEFAULT_CATEGORY
