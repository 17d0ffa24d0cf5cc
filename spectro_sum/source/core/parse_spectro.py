"""
Parser for SPECTRO output files.

Single-pass, enum-based state machine over the printed report. Every line
goes through the same three steps: a pending header skip swallows it, else a
section marker may switch the state, else the active section handles it.
Markers are checked before the handler so a new section always interrupts
the current one.

After the scan the normal-mode vectors are paired with their frequencies,
degenerate duplicates are dropped, and each remaining mode gets a symmetry
label (see symmetry.assign_irreps).
"""

import logging
import math
import re
import sys
from enum import Enum, auto
from typing import Iterable, List, Optional, Sequence, Tuple

from spectro_sum.source.core.summary import (
    CURVIL_ATOM_COUNTS,
    Atom,
    Curvil,
    CurvilKind,
    Summary,
)
from spectro_sum.source.core.symmetry import SymmetryConfig, assign_irreps
from spectro_sum.source.data.isotopes import atomic_number

logger = logging.getLogger(__name__)

BAD_FLOAT = sys.float_info.max
MHZ_PER_WAVENUMBER = 29979.2458
HZ_TO_MHZ = 1e-6
LXM_BLOCK_WIDTH = 10
ROT_TRANS_THRESHOLD = 5.0
TABLE_END = "*******************"

# returned by _excited_mode for the vibrational ground state
GROUND = -1


class SpectroParseError(ValueError):
    """Structural problem in a report; the whole file is unusable."""


class SpectroParseState(Enum):
    IDLE = auto()
    GEOMETRY = auto()
    MODE_MATRIX = auto()
    BAND_CENTERS = auto()
    STATE_TABLE = auto()
    ROT_A_INTERMEDIATE = auto()
    ROT_S_INTERMEDIATE = auto()
    FERMI1 = auto()
    FERMI2 = auto()
    CORIOLIS = auto()
    VIB_AVG_COORDS = auto()
    CURVILINEAR = auto()


QUARTIC_NAMES = {
    "DELTA J": "big_delta_j",
    "DELTA K": "big_delta_k",
    "DELTA JK": "big_delta_jk",
    "delta J": "delta_j",
    "delta K": "delta_k",
    "D J": "d_j",
    "D JK": "d_jk",
    "D K": "d_k",
    "d 1": "d1",
    "d 2": "d2",
}

SEXTIC_NAMES = {
    "PHI J": "big_phi_j",
    "PHI K": "big_phi_k",
    "PHI JK": "big_phi_jk",
    "PHI KJ": "big_phi_kj",
    "phi j": "phi_j",
    "phi jk": "phi_jk",
    "phi k": "phi_k",
    "H J": "h_j",
    "H JK": "h_jk",
    "H KJ": "h_kj",
    "H K": "h_k",
    "h 1": "h1",
    "h 2": "h2",
    "h 3": "h3",
}


def _constant_regex(names) -> re.Pattern:
    # longest names first so "DELTA JK" is not read as "DELTA J"
    alternatives = "|".join(
        re.escape(n) for n in sorted(names, key=len, reverse=True)
    )
    return re.compile(
        rf"^\s*(?P<name>{alternatives})\s+(?P<value>\S+)(?:\s+M?Hz)?\s*$"
    )


_QUARTIC_RE = _constant_regex(QUARTIC_NAMES)
_SEXTIC_RE = _constant_regex(SEXTIC_NAMES)
_LXM_BLOCK_HEADER_RE = re.compile(r"^\s*\d+(?:\s+\d+)*\s*$")
_FERMI_TYPE_RE = re.compile(r"TYPE\s*(\d)")
_ATOM_GROUP_RE = re.compile(r"([A-Za-z]{1,2})\s*\(\s*(\d+)\s*\)")
_ATOM_INDEX_RE = re.compile(r"\((\d+)\)$")

_CURVIL_KEYWORDS = {
    "STRETCH": CurvilKind.BOND,
    "BEND": CurvilKind.ANGLE,
    "TORSION": CurvilKind.TORSION,
}


# ── Utilities ──────────────────────────────────────────────────────────


def parse_spectro_float(value_str: str) -> float:
    """Parse a float that may use Fortran D notation.

    Returns BAD_FLOAT instead of raising so one corrupted number does not
    abort the whole extraction.
    """
    s = value_str.strip().replace("D", "E").replace("d", "e")
    try:
        return float(s)
    except ValueError:
        logger.debug(f"unparseable float {value_str!r}")
        return BAD_FLOAT


def _float_field(fields: Sequence[str], index: int) -> float:
    if index >= len(fields):
        logger.debug(f"missing field {index} in {fields}")
        return BAD_FLOAT
    return parse_spectro_float(fields[index])


def _parse_index(token: str, line: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise SpectroParseError(f"expected an integer, got {token!r} in {line!r}")


def _is_int(token: str) -> bool:
    try:
        int(token)
    except ValueError:
        return False
    return True


def _is_float(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True


def _to_mhz(wavenumber: float) -> float:
    if wavenumber == BAD_FLOAT:
        return BAD_FLOAT
    return wavenumber * MHZ_PER_WAVENUMBER


def _quanta(line: str) -> List[str]:
    """Quantum-number tokens following the ':' of a state descriptor line."""
    return line.split(":", 1)[1].split() if ":" in line else []


def _excited_mode(quanta: Sequence[str]) -> Optional[int]:
    """GROUND for the all-zero state, the mode index of a singly excited
    state, and None for overtones and combination bands."""
    if not quanta or any(q not in ("0", "1") for q in quanta):
        return None
    ones = [i for i, q in enumerate(quanta) if q == "1"]
    if not ones:
        return GROUND
    if len(ones) == 1:
        return ones[0]
    return None


# ── Section helpers ────────────────────────────────────────────────────


def parse_geometry_line(line: str) -> Atom:
    fields = line.split()
    if len(fields) < 5:
        raise SpectroParseError(f"short geometry line {line!r}")
    try:
        number = atomic_number(fields[4])
    except KeyError:
        raise SpectroParseError(f"unknown isotope mass {fields[4]!r}")
    x, y, z = (parse_spectro_float(f) for f in fields[1:4])
    return Atom(number, x, y, z)


def tokenize_curvil(line: str) -> List[str]:
    """Split a curvilinear coordinate line, keeping 'C(  2)' as one token."""
    return _ATOM_GROUP_RE.sub(lambda m: f"{m.group(1)}({m.group(2)})", line).split()


def parse_curvil(line: str) -> Curvil:
    tokens = tokenize_curvil(line)
    if len(tokens) < 2:
        raise SpectroParseError(f"short internal coordinate line {line!r}")
    keyword = tokens[1]
    if keyword == "LINEAR":
        # "LINEAR BEND" is two words
        kind, start = CurvilKind.LINEAR_BEND, 3
    elif keyword in _CURVIL_KEYWORDS:
        kind, start = _CURVIL_KEYWORDS[keyword], 2
    else:
        raise SpectroParseError(f"unknown internal coordinate type {keyword!r}")

    count = CURVIL_ATOM_COUNTS[kind]
    atom_tokens = tokens[start : start + count]
    if len(atom_tokens) != count:
        raise SpectroParseError(f"{kind.value} needs {count} atoms in {line!r}")
    atoms = []
    for token in atom_tokens:
        match = _ATOM_INDEX_RE.search(token)
        if match is None:
            raise SpectroParseError(f"bad atom label {token!r} in {line!r}")
        atoms.append(int(match.group(1)))
    return Curvil(kind, tuple(atoms))


def parse_equilibrium_rotations(line: str) -> List[float]:
    """Distinct positive equilibrium constants in MHz, largest first.

    SPECTRO always prints three values; a symmetric top repeats one of them
    and a linear molecule additionally prints zero for A.
    """
    tail = line.split(":", 1)[1] if ":" in line else line
    values = []
    for token in tail.split():
        value = parse_spectro_float(token)
        if value == BAD_FLOAT or value <= 0.0:
            continue
        values.append(_to_mhz(value))
    collapsed = []
    for value in sorted(values, reverse=True):
        if not collapsed or not math.isclose(value, collapsed[-1], rel_tol=1e-9):
            collapsed.append(value)
    return collapsed


def _match_equilibrium(values: List[float], rot_equil: List[float]) -> List[float]:
    """Pick, for each equilibrium constant, the closest state constant."""
    candidates = sorted((abs(v) for v in values), reverse=True)
    if not rot_equil:
        return [v for v in candidates if v > 0.0]
    return [min(candidates, key=lambda v: abs(v - e)) for e in rot_equil]


def parse_rotation_row(
    fields: Sequence[str],
    quanta: Sequence[str],
    symmetric: bool,
    rot_equil: List[float],
) -> Optional[List[float]]:
    """Rotational constants (MHz) of one state row, or None if discarded."""
    if len(fields) != 3:
        logger.debug(f"discarding rotational row with {len(fields)} fields")
        return None
    if _excited_mode(quanta) is None:
        return None
    values = [_to_mhz(parse_spectro_float(f)) for f in fields]
    if symmetric:
        return _match_equilibrium(values, rot_equil)
    return sorted(values, reverse=True)


def _flush_vib_state(pending: dict, corrected: List[float], zpt: float) -> float:
    """Record a finished state-table entry; returns the zero-point energy."""
    mode = _excited_mode(pending["quanta"])
    if mode is None:
        return zpt
    if mode == GROUND:
        return pending["energy"]
    if mode >= len(corrected):
        corrected.extend([0.0] * (mode + 1 - len(corrected)))
    corrected[mode] = pending["freq"]
    return zpt


def dedup_modes(
    frequencies: Sequence[float], vectors: Sequence[List[float]]
) -> List[List[float]]:
    """Keep the first vector of every distinct mode frequency."""
    if len(frequencies) != len(vectors):
        logger.debug(
            f"{len(frequencies)} mode frequencies for {len(vectors)} vectors"
        )
    seen = set()
    kept = []
    for freq, vector in zip(frequencies, vectors):
        if freq in seen:
            continue
        seen.add(freq)
        kept.append(vector)
    return kept


# ── Main parser ────────────────────────────────────────────────────────


def _scan(lines: Iterable[str]) -> Tuple[Summary, List[float], List[List[float]]]:
    """Run the state machine; returns the record, the mode-matrix
    frequencies and the raw mode-matrix columns."""
    ret = Summary()
    state = SpectroParseState.IDLE
    skip = 0

    # mode matrix
    lxm_freqs: List[float] = []
    lxm_columns: List[List[float]] = []
    block = -1

    # state table and rotational levels
    pending: Optional[dict] = None
    rot_quanta: List[str] = []

    for line in lines:
        if skip > 0:
            skip -= 1
            continue

        # ── Section markers ───────────────────────────────────────
        if "MOLECULAR PRINCIPAL GEOMETRY" in line:
            state = SpectroParseState.GEOMETRY
            skip = 2
            ret.geometry = []
            continue
        if "LXM MATRIX" in line:
            state = SpectroParseState.MODE_MATRIX
            skip = 1
            lxm_freqs, lxm_columns, block = [], [], -1
            continue
        if "BAND CENTER ANALYSIS" in line:
            state = SpectroParseState.BAND_CENTERS
            skip = 3
            continue
        if "DUNHAM" in line or "VIBRATIONAL ENERGY AND" in line:
            state = SpectroParseState.IDLE
            continue
        if "STATE NO." in line and "SPECTRUM" not in line:
            state = SpectroParseState.STATE_TABLE
            skip = 2
            pending = None
            continue
        if state == SpectroParseState.STATE_TABLE and TABLE_END in line:
            if pending is not None:
                ret.zero_point_energy = _flush_vib_state(
                    pending, ret.corrected_frequencies, ret.zero_point_energy
                )
                pending = None
            state = SpectroParseState.IDLE
            continue
        if "ASYMMETRIC TOP ROTATIONAL ENERGY LEVELS" in line:
            state = SpectroParseState.ROT_A_INTERMEDIATE
            skip = 1
            rot_quanta = []
            continue
        if (
            "SYMMETRIC TOP ROTATIONAL ENERGY LEVELS" in line
            or "LINEAR MOLECULE ROTATIONAL ENERGY LEVELS" in line
        ):
            state = SpectroParseState.ROT_S_INTERMEDIATE
            skip = 1
            rot_quanta = []
            continue
        if (
            state
            in (SpectroParseState.ROT_A_INTERMEDIATE, SpectroParseState.ROT_S_INTERMEDIATE)
            and TABLE_END in line
        ):
            state = SpectroParseState.IDLE
            continue
        if "EQUILIBRIUM ROTATIONAL CONSTANTS" in line:
            ret.equilibrium_rotational_constants = parse_equilibrium_rotations(line)
            continue
        match = _QUARTIC_RE.match(line)
        if match:
            setattr(
                ret.quartic_constants,
                QUARTIC_NAMES[match.group("name")],
                parse_spectro_float(match.group("value")),
            )
            continue
        match = _SEXTIC_RE.match(line)
        if match:
            value = parse_spectro_float(match.group("value"))
            if value != BAD_FLOAT:
                value *= HZ_TO_MHZ
            setattr(ret.sextic_constants, SEXTIC_NAMES[match.group("name")], value)
            continue
        if "INPUTED FERMI" in line:
            fermi_type = _FERMI_TYPE_RE.search(line)
            if fermi_type and fermi_type.group(1) == "2":
                state = SpectroParseState.FERMI2
                skip = 2
            else:
                state = SpectroParseState.FERMI1
                skip = 1
            continue
        if "INPUTED CORIOLIS" in line:
            state = SpectroParseState.CORIOLIS
            skip = 1
            continue
        if "VIBRATIONALLY AVERAGED COORDINATES" in line:
            state = SpectroParseState.VIB_AVG_COORDS
            # linear molecules print one header line fewer
            skip = 2 if len(ret.equilibrium_rotational_constants) == 1 else 3
            continue
        if "CURVILINEAR INTERNAL COORDINATES" in line:
            state = SpectroParseState.CURVILINEAR
            skip = 1
            continue

        # ── Section handlers ──────────────────────────────────────
        if state == SpectroParseState.IDLE:
            continue

        fields = line.split()

        if state == SpectroParseState.GEOMETRY:
            if not fields:
                state = SpectroParseState.IDLE
                continue
            ret.geometry.append(parse_geometry_line(line))

        elif state == SpectroParseState.MODE_MATRIX:
            if not fields:
                continue
            if _LXM_BLOCK_HEADER_RE.match(line):
                block += 1
            elif _is_int(fields[0]) and len(fields) > 1:
                offset = LXM_BLOCK_WIDTH * max(block, 0)
                for j, token in enumerate(fields[1:]):
                    column = offset + j
                    while len(lxm_columns) <= column:
                        lxm_columns.append([])
                    lxm_columns[column].append(parse_spectro_float(token))
            elif all(_is_float(f) for f in fields):
                for token in fields:
                    freq = float(token)
                    if freq > ROT_TRANS_THRESHOLD:
                        lxm_freqs.append(freq)
            else:
                state = SpectroParseState.IDLE

        elif state == SpectroParseState.BAND_CENTERS:
            if not fields:
                state = SpectroParseState.IDLE
                continue
            if any(c.isdigit() for c in line):
                ret.harmonic_frequencies.append(_float_field(fields, 1))
                ret.fundamental_frequencies.append(_float_field(fields, 2))

        elif state == SpectroParseState.STATE_TABLE:
            if not fields:
                if pending is not None:
                    ret.zero_point_energy = _flush_vib_state(
                        pending, ret.corrected_frequencies, ret.zero_point_energy
                    )
                    pending = None
            elif "NON-DEG" in line:
                # a new state line also ends the previous entry
                if pending is not None:
                    ret.zero_point_energy = _flush_vib_state(
                        pending, ret.corrected_frequencies, ret.zero_point_energy
                    )
                pending = {
                    "energy": _float_field(fields, 1),
                    "freq": _float_field(fields, 2),
                    "quanta": _quanta(line),
                }
            elif "DEGEN" in line and "(Vt)" in line and pending is not None:
                pending["quanta"].extend(_quanta(line))

        elif state in (
            SpectroParseState.ROT_A_INTERMEDIATE,
            SpectroParseState.ROT_S_INTERMEDIATE,
        ):
            if not fields:
                rot_quanta = []
            elif "NON-DEG" in line:
                rot_quanta = _quanta(line)
            elif "DEGEN" in line:
                if "(Vt)" in line:
                    rot_quanta.extend(_quanta(line))
            elif _is_float(fields[0]):
                rots = parse_rotation_row(
                    fields,
                    rot_quanta,
                    state == SpectroParseState.ROT_S_INTERMEDIATE,
                    ret.equilibrium_rotational_constants,
                )
                if rots is not None:
                    ret.rotational_constants.append(rots)
                rot_quanta = []

        elif state == SpectroParseState.FERMI1:
            if not fields:
                state = SpectroParseState.IDLE
                continue
            if len(fields) < 2:
                raise SpectroParseError(f"short fermi line {line!r}")
            a = _parse_index(fields[0], line)
            target = _parse_index(fields[1], line)
            ret.fermi_resonances.setdefault(target, []).append((a, a))

        elif state == SpectroParseState.FERMI2:
            if not fields:
                state = SpectroParseState.IDLE
                continue
            if len(fields) < 4:
                raise SpectroParseError(f"short fermi line {line!r}")
            # fields[1] is the literal "+"
            a = _parse_index(fields[0], line)
            b = _parse_index(fields[2], line)
            target = _parse_index(fields[3], line)
            ret.fermi_resonances.setdefault(target, []).append((a, b))

        elif state == SpectroParseState.CORIOLIS:
            if not fields:
                state = SpectroParseState.IDLE
                continue
            if len(fields) < 3:
                raise SpectroParseError(f"short coriolis line {line!r}")
            a, b, axis = (_parse_index(f, line) for f in fields[:3])
            key = (min(a, b), max(a, b))
            ret.coriolis_resonances.setdefault(key, []).append(axis)

        elif state == SpectroParseState.VIB_AVG_COORDS:
            if not fields:
                state = SpectroParseState.IDLE
                continue
            offset = 3 if len(fields) > 1 and fields[1] == "LINEAR" else 2
            ret.equilibrium_coordinates.append(_float_field(fields, offset))
            ret.averaged_coordinates.append(_float_field(fields, offset + 1))

        elif state == SpectroParseState.CURVILINEAR:
            if not fields:
                state = SpectroParseState.IDLE
                continue
            ret.curvilinear_coordinates.append(parse_curvil(line))

    # file ended inside the state table without a terminator
    if state == SpectroParseState.STATE_TABLE and pending is not None:
        ret.zero_point_energy = _flush_vib_state(
            pending, ret.corrected_frequencies, ret.zero_point_energy
        )

    return ret, lxm_freqs, lxm_columns


def _finish(
    ret: Summary,
    lxm_freqs: List[float],
    lxm_columns: List[List[float]],
    collaborator=None,
    symmetry_config: Optional[SymmetryConfig] = None,
    symmetry: bool = True,
) -> Summary:
    ret.normal_mode_vectors = dedup_modes(lxm_freqs, lxm_columns)
    if not symmetry:
        return ret
    if not ret.geometry or not ret.normal_mode_vectors:
        logger.debug("no geometry or normal modes, skipping symmetry labels")
        return ret
    ret.mode_symmetry_labels = assign_irreps(
        ret.molecule(), ret.normal_mode_vectors, collaborator, symmetry_config
    )
    return ret


def parse_spectro_lines(
    lines: Iterable[str],
    collaborator=None,
    symmetry_config: Optional[SymmetryConfig] = None,
    symmetry: bool = True,
) -> Summary:
    """Build a Summary from the lines of a SPECTRO report."""
    ret, lxm_freqs, lxm_columns = _scan(lines)
    return _finish(ret, lxm_freqs, lxm_columns, collaborator, symmetry_config, symmetry)


def parse_spectro_output(
    spectro_out_path: str,
    collaborator=None,
    symmetry_config: Optional[SymmetryConfig] = None,
    symmetry: bool = True,
) -> Summary:
    """
    Parse a SPECTRO output file into a Summary.

    The file is closed once the scan is done; symmetry labelling runs on the
    in-memory record afterwards. Structural problems raise SpectroParseError
    and an unreadable file raises OSError.
    """
    with open(spectro_out_path, "r", errors="replace") as f:
        ret, lxm_freqs, lxm_columns = _scan(f)
    ret = _finish(ret, lxm_freqs, lxm_columns, collaborator, symmetry_config, symmetry)
    logger.info(
        f"parsed {spectro_out_path}: {len(ret.harmonic_frequencies)} modes, "
        f"{len(ret.geometry)} atoms"
    )
    return ret
