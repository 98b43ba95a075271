"""JSON export of test results."""

import json
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.result import TestResult


def _finite(value: Any) -> Any:
    # JSON has no Infinity; percent_better can be inf when the loser scored 0
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_finite(v) for v in value]
    return value


class JSONExporter:
    """Export test results to JSON format."""

    def __init__(self, output_dir: str = "./reports"):
        self.output_dir = Path(output_dir)

    def to_dict(self, result: TestResult) -> Dict[str, Any]:
        data = result.to_dict()
        if result.comparison is not None:
            data["comparison"]["percent_better"] = result.comparison.percent_better
        return _finite(data)

    def dumps(self, result: TestResult) -> str:
        """Serialize a result to a JSON string."""
        return json.dumps(self.to_dict(result), indent=2)

    def export_result(self, result: TestResult, filename: Optional[str] = None) -> str:
        """Write a result to the output directory and return the file path."""
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"{result.mode}_{timestamp}.json"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / filename
        with open(filepath, "w") as f:
            json.dump(self.to_dict(result), f, indent=2)

        return str(filepath)
