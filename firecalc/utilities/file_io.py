"""Reading and writing calculator files.

Input stores are saved as a small document naming each leaf, its raw
text entry and the display units the entry was typed in, either as
JSON (`.json`) or as msgpack (any other extension). Result tables are
written as fixed-width text, and the full variable state can be dumped
for debugging.

Functions:
    - save_stores: Write (name, store, units) records to a file.
    - load_stores: Read (name, store, units) records from a file.
    - write_variable_records: Dump every variable's state, sorted by name.
    - write_result_text: Write a ResultTable as a text table.
"""

import json
import logging
import os
from typing import List, Sequence, Tuple

import msgpack

from firecalc.exceptions import PersistenceError
from firecalc.utilities.data_classes import ResultTable, format_number

logger = logging.getLogger(__name__)

STORE_FORMAT = "firecalc-inputs"
STORE_VERSION = 2


def _is_json(path: str) -> bool:
    return os.path.splitext(path)[1].lower() == ".json"


def save_stores(path: str, records: Sequence[Sequence[str]]) -> None:
    """Write leaf stores to `path`.

    Args:
        path (str): Destination; `.json` selects JSON, anything else msgpack.
        records (Sequence[Sequence[str]]): (variable name, raw store) pairs
            or (variable name, raw store, display units) triples.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    document = {
        "format": STORE_FORMAT,
        "version": STORE_VERSION,
        "stores": [[r[0], r[1], r[2] if len(r) > 2 else ""] for r in records],
    }
    try:
        if _is_json(path):
            with open(path, "w") as f:
                json.dump(document, f, indent=2)
        else:
            with open(path, "wb") as f:
                f.write(msgpack.packb(document, use_bin_type=True))
    except OSError as e:
        raise PersistenceError("Unable to write inputs", path=path, original_error=e) from e

    logger.info("Saved %d inputs to %s", len(document["stores"]), path)


def load_stores(path: str) -> List[Tuple[str, str, str]]:
    """Read leaf stores written by `save_stores`.

    Version 1 files carry no units; their records get empty units.

    Raises:
        PersistenceError: If the file cannot be read or is not an inputs file.
    """
    try:
        if _is_json(path):
            with open(path, "r") as f:
                document = json.load(f)
        else:
            with open(path, "rb") as f:
                document = msgpack.unpackb(f.read(), raw=False)
    except (OSError, ValueError, msgpack.UnpackException) as e:
        raise PersistenceError("Unable to read inputs", path=path, original_error=e) from e

    if not isinstance(document, dict) or document.get("format") != STORE_FORMAT:
        raise PersistenceError("Not a firecalc inputs file", path=path)
    if document.get("version", 0) > STORE_VERSION:
        raise PersistenceError(f"Unsupported inputs file version {document.get('version')}", path=path)

    records = []
    for entry in document.get("stores", []):
        units = entry[2] if len(entry) > 2 else ""
        records.append((str(entry[0]), str(entry[1]), str(units)))
    return records


def write_variable_records(path: str, graph) -> None:
    """Dump the state of every variable of `graph`, sorted by name."""
    lines = []
    for variable in sorted(graph.variables, key=lambda v: v.name):
        flags = "".join([
            "I" if variable.is_user_input else "-",
            "O" if variable.is_user_output else "-",
            "C" if variable.is_constant else "-",
            "M" if variable.is_masked else "-",
        ])
        if variable.is_continuous:
            value = (f"{variable.native_value!r} {variable.native_units} | "
                     f"{variable.display_text()} {variable.display_units}")
        else:
            value = variable.display_text()
        lines.append(f"{variable.name:<40} {variable.kind:<10} {flags} {value} [{variable.store}]")

    try:
        with open(path, "w") as f:
            f.write("\n".join(lines) + "\n")
    except OSError as e:
        raise PersistenceError("Unable to write variable records", path=path, original_error=e) from e


def _axis_text(value) -> str:
    if isinstance(value, str):
        return value
    return format_number(value, 6)


def _cell_text(table: ResultTable, output: str, row: int, col: int) -> str:
    if output in table.item_names:
        return table.item_name(output, row, col)
    return format_number(table.value(output, row, col), table.decimals.get(output, 6))


def result_text(table: ResultTable) -> str:
    """Fixed-width text rendering of a result table.

    Vectors and scalars get one column per output. Matrices get one block
    per output with a column per value of the column variable.
    """
    rows, cols, _ = table.values.shape
    lines = []

    if table.rank < 2:
        header = ([table.row_variable] if table.rank == 1 else []) + [
            f"{name} ({table.units[name]})" if table.units.get(name) else name for name in table.outputs]
        lines.append("  ".join(f"{h:>24}" for h in header))
        for r in range(rows):
            cells = [_axis_text(table.row_values[r])] if table.rank == 1 else []
            cells += [_cell_text(table, name, r, 0) for name in table.outputs]
            lines.append("  ".join(f"{c:>24}" for c in cells))
        return "\n".join(lines) + "\n"

    for name in table.outputs:
        lines.append(f"{name} ({table.units.get(name, '')})")
        header = [f"{table.row_variable} / {table.col_variable}"] + [_axis_text(v) for v in table.col_values]
        lines.append("  ".join(f"{h:>16}" for h in header))
        for r in range(rows):
            cells = [_axis_text(table.row_values[r])] + [_cell_text(table, name, r, c) for c in range(cols)]
            lines.append("  ".join(f"{c:>16}" for c in cells))
        lines.append("")
    return "\n".join(lines)


def write_result_text(path: str, table: ResultTable) -> None:
    try:
        with open(path, "w") as f:
            f.write(result_text(table))
    except OSError as e:
        raise PersistenceError("Unable to write results", path=path, original_error=e) from e
    logger.info("Wrote results to %s", path)
