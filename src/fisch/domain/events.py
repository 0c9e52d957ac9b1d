from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class SyncOutcome:
    kind: str
    ok: bool
    item_count: int = 0
    error: Optional[str] = None


@dataclass
class DataSynced:
    timestamp: float
    results: Dict[str, SyncOutcome] = field(default_factory=dict)

    @property
    def failed_kinds(self) -> list[str]:
        return [kind for kind, outcome in self.results.items() if not outcome.ok]
