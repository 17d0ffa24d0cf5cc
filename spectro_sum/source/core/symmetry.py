"""
Symmetry labels for normal modes.

assign_irreps is the adapter the parser calls after the scan: it displaces the
equilibrium geometry along each normal mode and asks a collaborator for the
point group and the irreducible representation of the displacement, retrying
at coarser tolerance before falling back to the totally symmetric label.

AbelianSymmetry is the default collaborator. It only knows D2h and its
subgroups, which is enough to label every mode of a molecule given in its
principal-axis frame (degenerate groups are reduced to their D2h subgroup).
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from pymatgen.core import Molecule
from pymatgen.core.operations import SymmOp

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "A"


class SymmetryError(Exception):
    """Raised when a displacement matches no irrep of the point group."""


@dataclass(frozen=True)
class PointGroup:
    name: str
    operations: Tuple[SymmOp, ...]
    # (irrep label, characters in operation order); first row is totally symmetric
    characters: Tuple[Tuple[str, Tuple[int, ...]], ...]

    @property
    def totally_symmetric(self) -> str:
        return self.characters[0][0]

    @property
    def irreps(self) -> List[str]:
        return [label for label, _ in self.characters]


@dataclass
class SymmetryConfig:
    start_tolerance: float = 1e-6
    factor: float = 10.0
    max_tolerance: float = 1e-1
    fallback_label: str = DEFAULT_LABEL


# ── Operations ─────────────────────────────────────────────────────────

def _identity() -> SymmOp:
    return SymmOp.from_rotation_and_translation(np.eye(3))


def _c2(axis: int) -> SymmOp:
    diag = -np.ones(3)
    diag[axis] = 1.0
    return SymmOp.from_rotation_and_translation(np.diag(diag))


def _mirror(normal: int) -> SymmOp:
    diag = np.ones(3)
    diag[normal] = -1.0
    return SymmOp.from_rotation_and_translation(np.diag(diag))


def _inversion() -> SymmOp:
    return SymmOp.from_rotation_and_translation(-np.eye(3))


# ── Character tables ───────────────────────────────────────────────────

# operation order: E, C2(z), C2(y), C2(x), i, s(xy), s(xz), s(yz)
_D2H = (
    ("Ag", (1, 1, 1, 1, 1, 1, 1, 1)),
    ("B1g", (1, 1, -1, -1, 1, 1, -1, -1)),
    ("B2g", (1, -1, 1, -1, 1, -1, 1, -1)),
    ("B3g", (1, -1, -1, 1, 1, -1, -1, 1)),
    ("Au", (1, 1, 1, 1, -1, -1, -1, -1)),
    ("B1u", (1, 1, -1, -1, -1, -1, 1, 1)),
    ("B2u", (1, -1, 1, -1, -1, 1, -1, 1)),
    ("B3u", (1, -1, -1, 1, -1, 1, 1, -1)),
)
# E, C2(z), C2(y), C2(x)
_D2 = (
    ("A", (1, 1, 1, 1)),
    ("B1", (1, 1, -1, -1)),
    ("B2", (1, -1, 1, -1)),
    ("B3", (1, -1, -1, 1)),
)
# E, C2, sv, sv'
_C2V = (
    ("A1", (1, 1, 1, 1)),
    ("A2", (1, 1, -1, -1)),
    ("B1", (1, -1, 1, -1)),
    ("B2", (1, -1, -1, 1)),
)
# E, C2, i, sh
_C2H = (
    ("Ag", (1, 1, 1, 1)),
    ("Bg", (1, -1, 1, -1)),
    ("Au", (1, 1, -1, -1)),
    ("Bu", (1, -1, -1, 1)),
)
_C2 = (("A", (1, 1)), ("B", (1, -1)))
_CS = (("A'", (1, 1)), ("A''", (1, -1)))
_CI = (("Ag", (1, 1)), ("Au", (1, -1)))
_C1 = (("A", (1,)),)


# ── Collaborator ───────────────────────────────────────────────────────


def _is_invariant(molecule: Molecule, op: SymmOp, tolerance: float) -> bool:
    """True if op maps every atom onto an atom of the same element."""
    coords = molecule.cart_coords
    numbers = np.array(molecule.atomic_numbers)
    images = op.operate_multi(coords)
    for image, number in zip(images, numbers):
        candidates = coords[numbers == number]
        if np.abs(candidates - image).max(axis=1).min() > tolerance:
            return False
    return True


def point_group(molecule: Molecule, tolerance: float) -> PointGroup:
    """Largest abelian subgroup of D2h that leaves molecule invariant."""
    c2_axes = [a for a in range(3) if _is_invariant(molecule, _c2(a), tolerance)]
    mirrors = [n for n in range(3) if _is_invariant(molecule, _mirror(n), tolerance)]
    inversion = _is_invariant(molecule, _inversion(), tolerance)

    if len(c2_axes) == 3 and inversion:
        ops = (
            _identity(), _c2(2), _c2(1), _c2(0), _inversion(),
            _mirror(2), _mirror(1), _mirror(0),
        )
        return PointGroup("D2h", ops, _D2H)
    if len(c2_axes) == 3:
        return PointGroup("D2", (_identity(), _c2(2), _c2(1), _c2(0)), _D2)
    if len(c2_axes) == 1:
        axis = c2_axes[0]
        if inversion:
            ops = (_identity(), _c2(axis), _inversion(), _mirror(axis))
            return PointGroup("C2h", ops, _C2H)
        following = (axis + 1) % 3
        other = (axis + 2) % 3
        if following in mirrors and other in mirrors:
            # sv is the plane spanned by the C2 axis and the following axis
            ops = (_identity(), _c2(axis), _mirror(other), _mirror(following))
            return PointGroup("C2v", ops, _C2V)
        return PointGroup("C2", (_identity(), _c2(axis)), _C2)
    if mirrors:
        return PointGroup("Cs", (_identity(), _mirror(mirrors[0])), _CS)
    if inversion:
        return PointGroup("Ci", (_identity(), _inversion()), _CI)
    return PointGroup("C1", (_identity(),), _C1)


def classify(pg: PointGroup, displaced: Molecule, tolerance: float) -> str:
    chars = tuple(
        1 if _is_invariant(displaced, op, tolerance) else -1
        for op in pg.operations
    )
    for label, row in pg.characters:
        if row == chars:
            return label
    raise SymmetryError(f"characters {chars} match no irrep of {pg.name}")


class AbelianSymmetry:
    """Default symmetry collaborator backed by pymatgen symmetry operations."""

    def point_group(self, molecule: Molecule, tolerance: float) -> PointGroup:
        return point_group(molecule, tolerance)

    def classify(self, pg: PointGroup, displaced: Molecule, tolerance: float) -> str:
        return classify(pg, displaced, tolerance)


# ── Adapter ────────────────────────────────────────────────────────────


def tolerance_ladder(config: SymmetryConfig) -> List[float]:
    """Tolerances tried in order, from start_tolerance up to max_tolerance."""
    if config.start_tolerance <= 0 or config.factor <= 1:
        raise ValueError("tolerance ladder needs a positive start and factor > 1")
    ladder = []
    step = 0
    while True:
        tol = config.start_tolerance * config.factor**step
        # allow for rounding in repeated multiplication
        if tol > config.max_tolerance * (1 + 1e-9):
            break
        ladder.append(tol)
        step += 1
    return ladder


def displace(molecule: Molecule, vector: Sequence[float]) -> Molecule:
    """Copy of molecule moved along a flat (x1, y1, z1, x2, ...) vector."""
    shift = np.asarray(vector, dtype=float)
    coords = molecule.cart_coords
    if shift.size != coords.size:
        raise SymmetryError(
            f"displacement has {shift.size} components for {len(molecule)} atoms"
        )
    return Molecule(molecule.species, coords + shift.reshape(coords.shape))


def assign_irreps(
    molecule: Molecule,
    vectors: Sequence[Sequence[float]],
    collaborator=None,
    config: Optional[SymmetryConfig] = None,
) -> List[str]:
    """Symmetry label of every normal-mode vector, never raising SymmetryError."""
    if collaborator is None:
        collaborator = AbelianSymmetry()
    if config is None:
        config = SymmetryConfig()
    ladder = tolerance_ladder(config)

    labels = []
    for mode, vector in enumerate(vectors):
        label = None
        fallback = config.fallback_label
        for tol in ladder:
            try:
                pg = collaborator.point_group(molecule, tol)
                fallback = pg.totally_symmetric
                label = collaborator.classify(pg, displace(molecule, vector), tol)
                break
            except SymmetryError as e:
                logger.debug(f"mode {mode + 1}: {e} at tolerance {tol:g}")
        if label is None:
            logger.warning(
                f"mode {mode + 1}: no irrep up to tolerance {config.max_tolerance:g}, "
                f"using {fallback}"
            )
            label = fallback
        labels.append(label)
    return labels
