"""Units-of-measure engine for firecalc.

Modules:
    - registry: UnitsRegistry, phrase normalization and compilation,
      compatibility checks and conversions.
    - unit_table: Standard unit and derived-unit tables loaded from JSON.
"""

from firecalc.units.registry import UnitsRegistry, normalize_phrase
from firecalc.units.unit_table import UnitTable, build_default_registry

__all__ = [
    "UnitsRegistry",
    "UnitTable",
    "build_default_registry",
    "normalize_phrase",
]
