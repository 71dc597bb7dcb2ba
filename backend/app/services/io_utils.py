from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import pandas as pd


def prefer_parquet(
    csv_path: str | Path,
    *,
    columns: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """Load a table preferring ``<name>.parquet`` next to the CSV.

    Parameters
    ----------
    csv_path:
        Location of the canonical CSV file.
    columns:
        Optional subset of columns. Columns absent from the file are ignored
        rather than raising, since exports from the shop database vary.
    """

    csv_path = Path(csv_path)
    pq_path = csv_path.with_suffix(".parquet")

    if pq_path.exists():
        frame = pd.read_parquet(pq_path)
    elif csv_path.exists():
        frame = pd.read_csv(csv_path, dtype={"id": "string"})
    else:
        raise FileNotFoundError(f"Neither {csv_path} nor {pq_path} exists")

    if columns is not None:
        wanted = [col for col in columns if col in frame.columns]
        frame = frame[wanted]
    return frame


def read_json_lines(path: str | Path) -> pd.DataFrame:
    """Read a JSON Lines export; nested fields stay Python lists/dicts."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{path} not found")
    if path.stat().st_size == 0:
        return pd.DataFrame()
    return pd.read_json(path, lines=True, dtype=False, convert_dates=False)
