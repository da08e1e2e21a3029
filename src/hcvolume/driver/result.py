"""Operation result types for lifecycle operations."""

from enum import Enum

from pydantic import BaseModel


class StepStatus(str, Enum):
    """Outcome of a single lifecycle step."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    # Failed, logged and continued (best-effort steps only)
    FAILED_NONFATAL = "failed_nonfatal"


class StepResult(BaseModel):
    """Result of a best-effort step.

    Fatal failures are raised as PluginError; only steps whose failure must
    not abort the surrounding operation report FAILED_NONFATAL here.
    """

    name: str
    status: StepStatus
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.status == StepStatus.FAILED_NONFATAL


class OperationResult(BaseModel):
    """Result of a completed lifecycle operation.

    Carries non-fatal warnings (unsupported options, best-effort step
    failures) so callers can surface them without failing the request.
    """

    name: str
    steps: list[StepResult] = []
    warnings: list[str] = []

    def record(self, step: StepResult) -> None:
        self.steps.append(step)
        if step.failed:
            self.warnings.append(f"{step.name}: {step.message}")
