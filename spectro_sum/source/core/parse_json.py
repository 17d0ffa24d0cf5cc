"""
Structured (JSON) summaries.

A summary written by write_summary_json can be read back with
load_summary_json, which skips the text scan entirely. Symmetry labels are
taken from the file unless a tolerance is passed, in which case they are
recomputed from the stored geometry and normal modes.
"""

import json
import logging
from typing import Optional

from spectro_sum.source.core.summary import Summary
from spectro_sum.source.core.symmetry import SymmetryConfig, assign_irreps
from spectro_sum.source.utils.atomic_write import atomic_json_write

logger = logging.getLogger(__name__)


def load_summary_json(
    json_path: str,
    symmetry_tolerance: Optional[float] = None,
    collaborator=None,
) -> Summary:
    with open(json_path, "r") as f:
        data = json.load(f)
    summary = Summary.from_dict(data)

    if symmetry_tolerance is not None:
        if summary.geometry and summary.normal_mode_vectors:
            config = SymmetryConfig(start_tolerance=symmetry_tolerance)
            if config.max_tolerance < symmetry_tolerance:
                config.max_tolerance = symmetry_tolerance
            summary.mode_symmetry_labels = assign_irreps(
                summary.molecule(), summary.normal_mode_vectors, collaborator, config
            )
        else:
            logger.warning(
                f"{json_path}: no geometry or normal modes, keeping stored irreps"
            )
    return summary


def write_summary_json(json_path: str, summary: Summary, indent: Optional[int] = 2) -> None:
    atomic_json_write(json_path, summary.to_dict(), indent=indent)
