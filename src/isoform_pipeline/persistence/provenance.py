"""Provenance records for pipeline outputs.

A record names the package version, the reference inputs, both significance
thresholds and the config hash, followed by the steps a command ran. It is
written as a JSON sidecar next to each output and appended to the store's
``_provenance`` table.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

PROVENANCE_TABLE = "_provenance"


class ProvenanceTracker:
    """Collects the parameters and steps of one CLI invocation."""

    def __init__(self, pipeline_version: str, config: "PipelineConfig"):
        self.pipeline_version = pipeline_version
        self.config_hash = config.config_hash()
        self.reference = config.reference.model_dump(mode="json")
        self.thresholds = config.thresholds.model_dump()
        self.created_at = datetime.now(timezone.utc)
        self.steps: list[dict] = []

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        """
        Append a named step, stamped with the current UTC time.

        Args:
            step_name: Operation name, e.g. "merge_deg_det"
            details: Counts and parameters worth keeping with the output
        """
        step = {"step_name": step_name, "timestamp": datetime.now(timezone.utc).isoformat()}
        if details:
            step["details"] = details
        self.steps.append(step)

    def as_dict(self) -> dict:
        return {
            "pipeline_version": self.pipeline_version,
            "config_hash": self.config_hash,
            "created_at": self.created_at.isoformat(),
            "reference": self.reference,
            "thresholds": self.thresholds,
            "processing_steps": list(self.steps),
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Write the record beside an output file.

        ``results/merged_deg_det.tsv`` gets
        ``results/merged_deg_det.provenance.json``.

        Returns:
            Path of the sidecar
        """
        sidecar_path = Path(output_path).with_suffix(".provenance.json")
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)
        sidecar_path.write_text(json.dumps(self.as_dict(), indent=2, default=str))
        return sidecar_path

    def save_to_store(self, store: "PipelineStore") -> None:
        """Append the record as one row of the store's provenance table."""
        record = self.as_dict()
        store.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {PROVENANCE_TABLE} (
                version VARCHAR,
                config_hash VARCHAR,
                created_at TIMESTAMP,
                thresholds_json VARCHAR,
                steps_json VARCHAR
            )
        """)
        store.conn.execute(
            f"INSERT INTO {PROVENANCE_TABLE} VALUES (?, ?, ?, ?, ?)",
            [
                record["pipeline_version"],
                record["config_hash"],
                record["created_at"],
                json.dumps(record["thresholds"]),
                json.dumps(record["processing_steps"], default=str),
            ],
        )

    @classmethod
    def from_config(cls, config: "PipelineConfig") -> "ProvenanceTracker":
        """Tracker stamped with the installed isoform_pipeline version."""
        from isoform_pipeline import __version__

        return cls(__version__, config)
