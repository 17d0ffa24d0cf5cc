"""
Result record for a single SPECTRO report.

The record is filled by parse_spectro.parse_spectro_lines and only read by
consumers afterwards. to_dict/from_dict give the nested structured form that
is also accepted as an alternate input (see parse_json).
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np
from pymatgen.core import Element, Molecule


@dataclass(frozen=True)
class Atom:
    atomic_number: int
    x: float
    y: float
    z: float

    @property
    def coords(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def label(self) -> str:
        """Element symbol for display, e.g. 'C'."""
        return Element.from_Z(self.atomic_number).symbol


class CurvilKind(Enum):
    BOND = "bond"
    ANGLE = "angle"
    TORSION = "torsion"
    LINEAR_BEND = "linear_bend"


# number of atom indices each coordinate type names
CURVIL_ATOM_COUNTS = {
    CurvilKind.BOND: 2,
    CurvilKind.ANGLE: 3,
    CurvilKind.TORSION: 4,
    CurvilKind.LINEAR_BEND: 3,
}


@dataclass(frozen=True)
class Curvil:
    """Internal coordinate with 1-based atom indices."""

    kind: CurvilKind
    atoms: Tuple[int, ...]

    def __post_init__(self):
        want = CURVIL_ATOM_COUNTS[self.kind]
        if len(self.atoms) != want:
            raise ValueError(
                f"{self.kind.value} takes {want} atoms, got {len(self.atoms)}"
            )


@dataclass
class Delta:
    """Quartic centrifugal distortion constants in MHz."""

    # A reduction
    big_delta_j: Optional[float] = None
    big_delta_k: Optional[float] = None
    big_delta_jk: Optional[float] = None
    delta_j: Optional[float] = None
    delta_k: Optional[float] = None
    # S reduction
    d_j: Optional[float] = None
    d_jk: Optional[float] = None
    d_k: Optional[float] = None
    d1: Optional[float] = None
    d2: Optional[float] = None


@dataclass
class Phi:
    """Sextic centrifugal distortion constants in MHz."""

    # A reduction
    big_phi_j: Optional[float] = None
    big_phi_k: Optional[float] = None
    big_phi_jk: Optional[float] = None
    big_phi_kj: Optional[float] = None
    phi_j: Optional[float] = None
    phi_jk: Optional[float] = None
    phi_k: Optional[float] = None
    # S reduction
    h_j: Optional[float] = None
    h_jk: Optional[float] = None
    h_kj: Optional[float] = None
    h_k: Optional[float] = None
    h1: Optional[float] = None
    h2: Optional[float] = None
    h3: Optional[float] = None


def _constants_to_dict(consts) -> dict:
    return {f.name: getattr(consts, f.name) for f in fields(consts)}


@dataclass
class Summary:
    """Everything extracted from one report.

    The parser is the only writer; a Summary it returns is treated as
    read-only, and consumers copy it (e.g. via to_dict) before changing it.
    """

    harmonic_frequencies: List[float] = field(default_factory=list)
    fundamental_frequencies: List[float] = field(default_factory=list)
    corrected_frequencies: List[float] = field(default_factory=list)
    zero_point_energy: float = 0.0
    geometry: List[Atom] = field(default_factory=list)
    mode_symmetry_labels: List[str] = field(default_factory=list)
    normal_mode_vectors: List[List[float]] = field(default_factory=list)
    rotational_constants: List[List[float]] = field(default_factory=list)
    equilibrium_rotational_constants: List[float] = field(default_factory=list)
    quartic_constants: Delta = field(default_factory=Delta)
    sextic_constants: Phi = field(default_factory=Phi)
    fermi_resonances: Dict[int, List[Tuple[int, int]]] = field(default_factory=dict)
    coriolis_resonances: Dict[Tuple[int, int], List[int]] = field(default_factory=dict)
    curvilinear_coordinates: List[Curvil] = field(default_factory=list)
    equilibrium_coordinates: List[float] = field(default_factory=list)
    averaged_coordinates: List[float] = field(default_factory=list)

    # ── Derived values ─────────────────────────────────────────────────

    @property
    def is_linear(self) -> bool:
        return len(self.equilibrium_rotational_constants) == 1

    @property
    def kappa(self) -> Optional[float]:
        """Ray's asymmetry parameter of the ground vibrational state.

        Only defined for asymmetric tops, where three equilibrium constants
        were found and the ground state has a full (A, B, C) triple.
        """
        if len(self.equilibrium_rotational_constants) != 3:
            return None
        if not self.rotational_constants or len(self.rotational_constants[0]) != 3:
            return None
        a, b, c = self.rotational_constants[0]
        if a == c:
            return None
        return (2.0 * b - a - c) / (a - c)

    def equilibrium_triple(self) -> Tuple[Optional[float], ...]:
        return _as_triple(self.equilibrium_rotational_constants)

    def rotational_triples(self) -> List[Tuple[Optional[float], ...]]:
        """Per-state constants padded to three slots with None at the end.

        Only asymmetric tops fill the (A, B, C) slots by axis. Symmetric
        tops store their two distinct constants largest first, so both
        prolate (A, B=C) and oblate (A=B, C) tops render as
        (larger, smaller, None); linear molecules render as (B, None, None).
        """
        return [_as_triple(rot) for rot in self.rotational_constants]

    def molecule(self) -> Molecule:
        """Equilibrium geometry as a pymatgen Molecule."""
        return Molecule(
            [atom.atomic_number for atom in self.geometry],
            [atom.coords for atom in self.geometry],
        )

    def coordinate_array(self) -> np.ndarray:
        return np.array([atom.coords for atom in self.geometry], dtype=float)

    # ── Structured form ────────────────────────────────────────────────

    def to_dict(self) -> dict:
        coriolis_keys = sorted(self.coriolis_resonances)
        return {
            "harm": list(self.harmonic_frequencies),
            "fund": list(self.fundamental_frequencies),
            "corr": list(self.corrected_frequencies),
            "zpt": self.zero_point_energy,
            "geom": [
                {"atomic_number": a.atomic_number, "coords": list(a.coords)}
                for a in self.geometry
            ],
            "irreps": list(self.mode_symmetry_labels),
            "lxm": [list(v) for v in self.normal_mode_vectors],
            "rots": [list(r) for r in self.rotational_constants],
            "rot_equil": list(self.equilibrium_rotational_constants),
            "deltas": _constants_to_dict(self.quartic_constants),
            "phis": _constants_to_dict(self.sextic_constants),
            "fermi": {
                str(target): [list(pair) for pair in pairs]
                for target, pairs in sorted(self.fermi_resonances.items())
            },
            "coriolis": {
                "modes": [list(k) for k in coriolis_keys],
                "axes": [list(self.coriolis_resonances[k]) for k in coriolis_keys],
            },
            "curvils": [
                {"kind": c.kind.value, "atoms": list(c.atoms)}
                for c in self.curvilinear_coordinates
            ],
            "requil": list(self.equilibrium_coordinates),
            "ralpha": list(self.averaged_coordinates),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Summary":
        """Build a record from the nested form written by to_dict.

        Missing keys fall back to empty values, so partial records produced
        by other tools are accepted.
        """
        coriolis = data.get("coriolis") or {}
        modes = coriolis.get("modes", [])
        axes = coriolis.get("axes", [])
        if len(modes) != len(axes):
            raise ValueError("coriolis modes and axes differ in length")
        return cls(
            harmonic_frequencies=[float(v) for v in data.get("harm", [])],
            fundamental_frequencies=[float(v) for v in data.get("fund", [])],
            corrected_frequencies=[float(v) for v in data.get("corr", [])],
            zero_point_energy=float(data.get("zpt", 0.0)),
            geometry=[
                Atom(int(a["atomic_number"]), *[float(c) for c in a["coords"]])
                for a in data.get("geom", [])
            ],
            mode_symmetry_labels=[str(s) for s in data.get("irreps", [])],
            normal_mode_vectors=[
                [float(v) for v in vec] for vec in data.get("lxm", [])
            ],
            rotational_constants=[
                [float(v) for v in rot] for rot in data.get("rots", [])
            ],
            equilibrium_rotational_constants=[
                float(v) for v in data.get("rot_equil", [])
            ],
            quartic_constants=Delta(**data.get("deltas", {})),
            sextic_constants=Phi(**data.get("phis", {})),
            fermi_resonances={
                int(target): [(int(a), int(b)) for a, b in pairs]
                for target, pairs in (data.get("fermi") or {}).items()
            },
            coriolis_resonances={
                (int(m[0]), int(m[1])): [int(ax) for ax in axs]
                for m, axs in zip(modes, axes)
            },
            curvilinear_coordinates=[
                Curvil(CurvilKind(c["kind"]), tuple(int(i) for i in c["atoms"]))
                for c in data.get("curvils", [])
            ],
            equilibrium_coordinates=[float(v) for v in data.get("requil", [])],
            averaged_coordinates=[float(v) for v in data.get("ralpha", [])],
        )


def _as_triple(values: List[float]) -> Tuple[Optional[float], ...]:
    padded = list(values[:3]) + [None] * (3 - min(len(values), 3))
    return tuple(padded)
