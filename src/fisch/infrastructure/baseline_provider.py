import copy
import json
from pathlib import Path


BUNDLED_BASELINE_DIR = Path(__file__).resolve().parents[1] / "data"

DATASETS = ("codes", "fish", "rods", "bait", "locations")


class BaselineProvider:
    """Reads the bundled reference datasets (one JSON file per kind)."""

    def __init__(self, root_dir: str | Path | None = None) -> None:
        self.root_dir = Path(root_dir) if root_dir else BUNDLED_BASELINE_DIR
        self._dataset_cache: dict[str, list[dict]] = {}

    def _dataset_path(self, kind: str) -> Path:
        return self.root_dir / f"{kind}.json"

    def _load_rows(self, kind: str) -> list[dict]:
        if kind in self._dataset_cache:
            return self._dataset_cache[kind]
        if kind not in DATASETS:
            raise ValueError(f"Unknown baseline dataset '{kind}'")

        path = self._dataset_path(kind)
        if not path.exists():
            raise FileNotFoundError(f"Baseline dataset not found: {path}")

        raw = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            rows = raw.get("data") or raw.get("results") or []
        elif isinstance(raw, list):
            rows = raw
        else:
            rows = []

        normalized = [row for row in rows if isinstance(row, dict)]
        self._dataset_cache[kind] = normalized
        return normalized

    def rows(self, kind: str) -> list[dict]:
        return copy.deepcopy(self._load_rows(kind))

    def codes(self) -> list[dict]:
        return self.rows("codes")

    def fish(self) -> list[dict]:
        return self.rows("fish")

    def rods(self) -> list[dict]:
        return self.rows("rods")

    def bait(self) -> list[dict]:
        return self.rows("bait")

    def locations(self) -> list[dict]:
        return self.rows("locations")
