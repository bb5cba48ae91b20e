"""Batch processing configuration in one dataclass."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

from saberkit.storage.writer import MAX_FILE_BYTES


@dataclass
class PipelineConfig:
    """Where to read maps from, where to write Parquet, and how hard to work."""

    # Folders scanned recursively for map folders (and zips)
    input_paths: list[Path] = field(default_factory=lambda: [Path("data/raw")])
    output_dir: Path = Path("data/processed")

    max_file_bytes: int = MAX_FILE_BYTES
    workers: int = 4
    include_archives: bool = True  # Also process *.zip maps
    strict: bool = False  # Fail a map on its first bad difficulty

    def __post_init__(self) -> None:
        self.input_paths = [Path(p) for p in self.input_paths]
        self.output_dir = Path(self.output_dir)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(self)
        data["input_paths"] = [str(p) for p in self.input_paths]
        data["output_dir"] = str(self.output_dir)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> PipelineConfig:
        """Load config from JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        # Only pass known fields to handle forward/backward compat
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
