"""Runner summary entities."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class SourceRunStats:
    """Counters for one source during one runner invocation."""

    dequeued: int = 0
    updated: int = 0
    not_modified: int = 0
    errors: int = 0
    requeued: int = 0
    dropped: int = 0
    throttled: bool = False


@dataclass
class RunSummary:
    """Result of ``Runner.run_once``."""

    processed_sources: int = 0
    sources: dict[str, SourceRunStats] = field(default_factory=dict)
    duration_ms: float = 0.0
    budget_exhausted: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "processed_sources": self.processed_sources,
            "sources": {sid: asdict(stats) for sid, stats in self.sources.items()},
            "duration_ms": round(self.duration_ms, 1),
            "budget_exhausted": self.budget_exhausted,
        }
