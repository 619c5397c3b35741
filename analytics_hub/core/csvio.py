from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd


def export_records_to_csv(path: Path, rows: Iterable[dict], columns: Sequence[str] | None = None) -> int:
    """Write records to ``path`` as CSV and return the number of rows written.

    ``columns`` fixes the leading column order; any other fields follow in first-seen order.
    """

    df = pd.DataFrame(list(rows))
    if columns:
        leading = list(columns)
        for name in leading:
            if name not in df.columns:
                df[name] = None
        df = df[leading + [name for name in df.columns if name not in leading]]
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return len(df)
