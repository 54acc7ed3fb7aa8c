"""
Result storage for load-test runs.

Virtual users report from many threads at once, so every write is
serialized through a lock.
"""

from typing import Protocol, List
from pathlib import Path
import json
import threading

from scenario_models import RunSummary, ScenarioOutcome, SpanRecord


class ResultStore(Protocol):
    """
    Abstract interface for result storage.

    Lets the load runner write somewhere other than local files
    without changing the scenario code.
    """

    def add_outcome(self, outcome: ScenarioOutcome) -> None:
        """Record the outcome of one scenario iteration."""
        ...

    def add_span(self, span: SpanRecord) -> None:
        """Record one timing span."""
        ...

    def save(self, summary: RunSummary) -> None:
        """Persist the run summary."""
        ...


class JSONLResultStore:
    """
    JSONL-based implementation of ResultStore.

    Uses JSONL for the append-only outcome and span logs and a JSON file
    for the summary.
    """

    def __init__(self, output_dir: str = "output/loadtest"):
        """
        Initialize the result store.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.outcomes_file = self.output_dir / "outcomes.jsonl"
        self.spans_file = self.output_dir / "spans.jsonl"
        self.summary_file = self.output_dir / "summary.json"

        self._lock = threading.Lock()

    def _append(self, path: Path, line: str) -> None:
        with self._lock:
            with open(path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')

    def add_outcome(self, outcome: ScenarioOutcome) -> None:
        self._append(self.outcomes_file, outcome.model_dump_json())

    def add_span(self, span: SpanRecord) -> None:
        self._append(self.spans_file, span.model_dump_json())

    def load_outcomes(self) -> List[ScenarioOutcome]:
        """Read back every recorded outcome."""
        if not self.outcomes_file.exists():
            return []
        with open(self.outcomes_file, 'r', encoding='utf-8') as f:
            return [ScenarioOutcome.model_validate_json(line) for line in f if line.strip()]

    def save(self, summary: RunSummary) -> None:
        """Write the summary, replacing any previous one."""
        with self._lock:
            with open(self.summary_file, 'w', encoding='utf-8') as f:
                json.dump(summary.model_dump(mode='json'), f, indent=2)

    def clear(self) -> None:
        """Remove previous results (useful for --fresh)."""
        with self._lock:
            for file in [self.outcomes_file, self.spans_file, self.summary_file]:
                if file.exists():
                    file.unlink()
