"""DuckDB store for reference, merged and enrichment tables.

Every table written through PipelineStore gets a row in ``_checkpoints``.
CLI commands consult that catalog to reuse a reference dictionary built by an
earlier run, and ``isoform-pipeline info`` lists it.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import duckdb
import polars as pl

CHECKPOINT_TABLE = "_checkpoints"


@dataclass(frozen=True)
class Checkpoint:
    """Catalog entry for one stored table."""

    table_name: str
    created_at: datetime
    row_count: int
    description: str


class PipelineStore:
    """Polars-in, polars-out wrapper around one DuckDB database file."""

    def __init__(self, db_path: Path):
        """
        Open (or create) the database and its checkpoint catalog.

        Args:
            db_path: DuckDB file; missing parent directories are created
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(str(self.db_path))
        self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {CHECKPOINT_TABLE} (
                table_name VARCHAR PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_count BIGINT,
                description VARCHAR
            )
        """)

    def save_dataframe(self, df: pl.DataFrame, table_name: str, description: str = "") -> None:
        """
        Create or replace table_name with the contents of df.

        Rewriting a table is idempotent: the catalog row is replaced, not
        duplicated.

        Args:
            df: Table to store
            table_name: DuckDB table name
            description: Free text shown by ``info``

        Raises:
            ValueError: If df is not a polars DataFrame
        """
        if not isinstance(df, pl.DataFrame):
            raise ValueError(f"Expected a polars.DataFrame for '{table_name}', got {type(df).__name__}")

        self.conn.register("_incoming", df)
        try:
            self.conn.execute(f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM _incoming")
        finally:
            self.conn.unregister("_incoming")

        self.conn.execute(
            f"INSERT OR REPLACE INTO {CHECKPOINT_TABLE} "
            "(table_name, row_count, description, created_at) VALUES (?, ?, ?, CURRENT_TIMESTAMP)",
            [table_name, df.height, description],
        )

    def load_dataframe(self, table_name: str) -> Optional[pl.DataFrame]:
        """Return table_name as a polars DataFrame, or None if it is not stored."""
        try:
            return self.conn.execute(f"SELECT * FROM {table_name}").pl()
        except duckdb.CatalogException:
            return None

    def has_checkpoint(self, table_name: str) -> bool:
        row = self.conn.execute(
            f"SELECT COUNT(*) FROM {CHECKPOINT_TABLE} WHERE table_name = ?", [table_name]
        ).fetchone()
        return row[0] > 0

    def checkpoints(self) -> list[Checkpoint]:
        """Catalog entries, oldest first."""
        rows = self.conn.execute(
            f"SELECT table_name, created_at, row_count, description FROM {CHECKPOINT_TABLE} "
            "ORDER BY created_at, table_name"
        ).fetchall()
        return [Checkpoint(*row) for row in rows]

    def drop_checkpoint(self, table_name: str) -> None:
        """Remove a table and its catalog entry; missing tables are ignored."""
        self.conn.execute(f"DROP TABLE IF EXISTS {table_name}")
        self.conn.execute(f"DELETE FROM {CHECKPOINT_TABLE} WHERE table_name = ?", [table_name])

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @classmethod
    def from_config(cls, config: "PipelineConfig") -> "PipelineStore":
        """Open the store at config.duckdb_path."""
        return cls(config.duckdb_path)
