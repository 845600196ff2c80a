import json
import os
from typing import List, Optional

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from firecalc.utilities.data_classes import ResultCell, ResultTable


class ParquetWriter:
    """Writes result cells to numbered Parquet part files in a folder."""

    def __init__(self, folder: str):
        self.folder = folder
        os.makedirs(folder, exist_ok=True)
        self.counter = 0

    def write_batch(self, entries: List[ResultCell], metadata: Optional[dict] = None) -> Optional[str]:
        if not entries:
            return None
        if not os.path.exists(self.folder):
            os.makedirs(self.folder)

        df = pd.DataFrame([entry.to_dict() for entry in entries])
        file_path = os.path.join(self.folder, f"part-{self.counter:05d}.parquet")
        self.counter += 1

        table = pa.Table.from_pandas(df)
        if metadata:
            table = table.replace_schema_metadata({"firecalc_metadata": json.dumps(metadata)})
        pq.write_table(table, file_path, compression='brotli')
        return file_path

    def write_table(self, result: ResultTable) -> Optional[str]:
        """Write every cell of `result` as one part, with its axes as metadata."""
        metadata = {
            "rank": result.rank,
            "row_variable": result.row_variable,
            "col_variable": result.col_variable,
            "units": result.units,
            "item_names": result.item_names,
        }
        return self.write_batch(result.cells(), metadata)


def read_results(folder: str) -> pd.DataFrame:
    """Concatenate every part file written to `folder`."""
    parts = sorted(f for f in os.listdir(folder) if f.endswith(".parquet"))
    frames = [pq.read_table(os.path.join(folder, p)).to_pandas() for p in parts]
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)
