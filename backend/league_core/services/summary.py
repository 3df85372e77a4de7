from dataclasses import dataclass, field
from typing import List


@dataclass
class SweepSummary:
    """Outcome of a job that processes many items and tolerates failures."""

    processed: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "completed" if self.failed == 0 else "completed_with_errors"

    def record_failure(self, item_id: str) -> None:
        self.failed += 1
        self.failures.append(item_id)

    def as_dict(self) -> dict:
        return {"status": self.status, "processed": self.processed, "failed": self.failed}
