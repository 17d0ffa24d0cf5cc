"""Tests for spectro_sum.source.core.summary."""

import json

import numpy as np
import pytest

from spectro_sum.source.core.parse_spectro import MHZ_PER_WAVENUMBER
from spectro_sum.source.core.summary import (
    Atom,
    Curvil,
    CurvilKind,
    Delta,
    Summary,
)

C = MHZ_PER_WAVENUMBER


class TestAtom:

    @pytest.mark.parametrize("number, symbol", [(1, "H"), (6, "C"), (17, "Cl")])
    def test_label(self, number, symbol):
        assert Atom(number, 0.0, 0.0, 0.0).label() == symbol

    def test_coords(self):
        assert Atom(8, 1.0, 2.0, 3.0).coords == (1.0, 2.0, 3.0)


class TestCurvil:

    @pytest.mark.parametrize(
        "kind, atoms",
        [
            (CurvilKind.BOND, (1, 2, 3)),
            (CurvilKind.ANGLE, (1, 2)),
            (CurvilKind.TORSION, (1, 2, 3)),
            (CurvilKind.LINEAR_BEND, (1, 2, 3, 4)),
        ],
    )
    def test_wrong_atom_count(self, kind, atoms):
        with pytest.raises(ValueError):
            Curvil(kind, atoms)

    def test_hashable(self):
        assert len({Curvil(CurvilKind.BOND, (1, 2)), Curvil(CurvilKind.BOND, (1, 2))}) == 1


class TestDerived:

    def test_kappa_asymmetric_top(self, h2o_summary):
        a, b, c = (27.878 * C, 14.5785 * C, 9.5311 * C)
        assert h2o_summary.kappa == pytest.approx((2 * b - a - c) / (a - c))

    def test_kappa_undefined_for_linear(self, hcch_summary):
        assert hcch_summary.kappa is None

    def test_rotational_triples_padded(self, hcch_summary):
        triples = hcch_summary.rotational_triples()
        assert len(triples) == 5
        assert triples[0][0] == pytest.approx(1.1691 * C)
        assert triples[0][1:] == (None, None)
        assert hcch_summary.equilibrium_triple()[1:] == (None, None)

    @pytest.mark.parametrize(
        "rots",
        [
            [9.9, 6.2],  # oblate, A=B>C
            [9.9, 3.1],  # prolate, A>B=C
        ],
    )
    def test_symmetric_top_triples_largest_first(self, rots):
        ret = Summary(equilibrium_rotational_constants=rots, rotational_constants=[rots])
        assert ret.equilibrium_triple() == (rots[0], rots[1], None)
        assert ret.rotational_triples() == [(rots[0], rots[1], None)]

    def test_equilibrium_triple_full(self, h2o_summary):
        assert None not in h2o_summary.equilibrium_triple()

    def test_molecule(self, h2o_summary):
        mol = h2o_summary.molecule()
        assert mol.composition.formula.replace(" ", "") == "H2O1"
        np.testing.assert_allclose(mol.cart_coords, h2o_summary.coordinate_array())

    def test_empty_summary(self):
        ret = Summary()
        assert ret.kappa is None
        assert not ret.is_linear
        assert ret.equilibrium_triple() == (None, None, None)
        assert ret.coordinate_array().shape == (0,)


class TestStructuredForm:

    def test_round_trip(self, h2o_summary):
        data = json.loads(json.dumps(h2o_summary.to_dict()))
        assert Summary.from_dict(data) == h2o_summary

    def test_to_dict_copies(self, h2o_summary):
        data = h2o_summary.to_dict()
        data["harm"].append(1.0)
        data["rots"][0][0] = 0.0
        data["coriolis"]["axes"][0].clear()
        assert len(h2o_summary.harmonic_frequencies) == 3
        assert h2o_summary.rotational_constants[0][0] == pytest.approx(27.878 * C)
        assert h2o_summary.coriolis_resonances[(1, 2)] == [3, 2]

    def test_keys(self, hcch_summary):
        data = hcch_summary.to_dict()
        assert set(data) == {
            "harm", "fund", "corr", "zpt", "geom", "irreps", "lxm", "rots",
            "rot_equil", "deltas", "phis", "fermi", "coriolis", "curvils",
            "requil", "ralpha",
        }
        assert data["curvils"][3] == {"kind": "linear_bend", "atoms": [1, 3, 2]}
        assert data["deltas"]["d_j"] == pytest.approx(0.047484)

    def test_coriolis_as_parallel_lists(self, h2o_summary):
        coriolis = h2o_summary.to_dict()["coriolis"]
        assert coriolis == {"modes": [[1, 2], [1, 3]], "axes": [[3, 2], [1]]}

    def test_fermi_keys_are_strings(self, h2o_summary):
        assert h2o_summary.to_dict()["fermi"] == {
            "1": [[3, 3], [2, 3]],
            "2": [[3, 3]],
        }

    def test_partial_record(self):
        ret = Summary.from_dict({"harm": [100.0], "deltas": {"d_j": 0.5}})
        assert ret.harmonic_frequencies == [100.0]
        assert ret.quartic_constants == Delta(d_j=0.5)
        assert ret.geometry == []

    def test_mismatched_coriolis(self):
        with pytest.raises(ValueError):
            Summary.from_dict({"coriolis": {"modes": [[1, 2]], "axes": []}})
