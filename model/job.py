# model/job.py
from uuid import uuid4
from pydantic import BaseModel, Field, SecretStr
from model.summary import SummaryResult
from util.enums import Stage


class IllegalTransition(RuntimeError):
    pass


class Job(BaseModel):
    """
    One request, one job. Mutated only through `advance`, which enforces:
    - stages move forward (parsing -> downloading -> transcribing -> summarizing -> done)
    - error is reachable from any non-terminal stage
    - progress never goes backwards inside a stage
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    source_url: str
    api_key: SecretStr = Field(exclude=True)
    stage: Stage = Stage.PARSING
    progress: int = 0
    message: str | None = None
    title: str | None = None
    audio_url: str | None = None
    transcript: str = ""
    result: SummaryResult | None = None

    def advance(self, stage: Stage, progress: int | None = None, message: str | None = None) -> None:
        if self.stage.terminal:
            raise IllegalTransition(f"job {self.id} already {self.stage.value}")
        if stage != Stage.ERROR and stage.rank - self.stage.rank not in (0, 1):
            raise IllegalTransition(f"{self.stage.value} -> {stage.value}")

        if progress is not None:
            progress = max(0, min(100, int(progress)))
            if stage == self.stage:
                progress = max(progress, self.progress)
            self.progress = progress
        self.stage = stage
        self.message = message
