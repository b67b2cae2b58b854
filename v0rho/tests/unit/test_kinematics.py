"""
Unit tests for four-vector reconstruction and the decay-plane angles.
"""

from __future__ import annotations

import math
from typing import Callable, List

import numpy as np
import pytest
import vector

from v0rho.modules.cuts import UpcCuts
from v0rho.modules.data_model import Track
from v0rho.modules.kinematics import (
    LAMBDA_MASS,
    PION_MASS,
    delta_phi,
    phi_charge,
    phi_random,
    rapidity_at_mass,
    reconstruct_system,
    system_passes_cuts,
    track_four_vector,
)

TrackFactory = Callable[..., Track]


@pytest.fixture
def pion_pair(make_track: TrackFactory) -> List[Track]:
    """Opposite-sign pair with a small total transverse momentum."""
    return [
        make_track(index=0, px=0.3, py=0.05, pz=0.1, sign=1),
        make_track(index=1, px=-0.28, py=0.02, pz=-0.05, sign=-1),
    ]


def _wrapped_difference(a: float, b: float) -> float:
    return (a - b) % (2.0 * math.pi)


@pytest.mark.unit
class TestFourVectors:
    """Mass hypotheses and system sums."""

    def test_track_four_vector_mass(self, make_track: TrackFactory) -> None:
        p4 = track_four_vector(make_track(px=0.3, py=0.4, pz=0.0))

        assert p4.mass == pytest.approx(PION_MASS)
        assert p4.E == pytest.approx(math.sqrt(0.25 + PION_MASS**2))

    def test_rapidity_at_mass(self) -> None:
        assert rapidity_at_mass(1.0, 0.0, 0.0, LAMBDA_MASS) == pytest.approx(0.0)

        pz = 0.5
        energy = math.sqrt(1.0 + pz**2 + LAMBDA_MASS**2)
        expected = 0.5 * math.log((energy + pz) / (energy - pz))
        assert rapidity_at_mass(1.0, 0.0, pz, LAMBDA_MASS) == pytest.approx(expected)

    def test_pair_system(self, pion_pair: List[Track]) -> None:
        system = reconstruct_system([track_four_vector(t) for t in pion_pair])

        assert system.pt == pytest.approx(0.0728, abs=1e-4)
        assert system.mass == pytest.approx(0.661, abs=1e-3)
        assert system.rapidity == pytest.approx(0.075, abs=1e-3)

    def test_system_independent_of_order(self, make_track: TrackFactory) -> None:
        tracks = [
            make_track(px=0.2, py=-0.1, pz=0.3),
            make_track(px=-0.15, py=0.25, pz=-0.1),
            make_track(px=0.05, py=-0.12, pz=0.02),
            make_track(px=-0.1, py=-0.02, pz=-0.2),
        ]
        forward = reconstruct_system([track_four_vector(t) for t in tracks])
        backward = reconstruct_system([track_four_vector(t) for t in reversed(tracks)])

        assert forward.mass == pytest.approx(backward.mass)
        assert forward.rapidity == pytest.approx(backward.rapidity)
        assert forward.pt == pytest.approx(backward.pt)

    def test_empty_system_is_zero(self) -> None:
        system = reconstruct_system([])

        assert system.E == 0.0
        assert system.pt == 0.0


@pytest.mark.unit
class TestSystemCuts:
    """Mass, pt and rapidity window of the reconstructed system."""

    def test_pair_passes_defaults(self, pion_pair: List[Track]) -> None:
        system = reconstruct_system([track_four_vector(t) for t in pion_pair])

        assert system_passes_cuts(system, UpcCuts())

    def test_back_to_back_pair_passes(self, make_track: TrackFactory) -> None:
        """Zero transverse momentum pair at the rho mass region."""
        tracks = [make_track(px=0.3, sign=1), make_track(px=-0.3, sign=-1)]
        system = reconstruct_system([track_four_vector(t) for t in tracks])

        assert system.mass == pytest.approx(2.0 * math.sqrt(0.09 + PION_MASS**2))
        assert system_passes_cuts(system, UpcCuts())

    def test_pt_cut(self, pion_pair: List[Track]) -> None:
        system = reconstruct_system([track_four_vector(t) for t in pion_pair])

        assert not system_passes_cuts(system, UpcCuts(system_pt_max=0.05))

    def test_mass_window(self, pion_pair: List[Track]) -> None:
        system = reconstruct_system([track_four_vector(t) for t in pion_pair])

        assert not system_passes_cuts(system, UpcCuts(system_mass_min=0.7))
        assert not system_passes_cuts(system, UpcCuts(system_mass_max=0.6))

    def test_rapidity_window(self, pion_pair: List[Track]) -> None:
        system = reconstruct_system([track_four_vector(t) for t in pion_pair])

        assert not system_passes_cuts(system, UpcCuts(system_y_max=0.05))


@pytest.mark.unit
class TestDecayPlaneAngles:
    """delta_phi wrapping and the random / charge-ordered angles."""

    def test_delta_phi_identical_vectors(self) -> None:
        p4 = vector.obj(px=0.3, py=-0.2, pz=0.1, mass=PION_MASS)

        assert delta_phi(p4, p4) == 0.0

    def test_delta_phi_range(self) -> None:
        rng = np.random.default_rng(7)
        for _ in range(200):
            a = vector.obj(px=rng.normal(), py=rng.normal(), pz=0.0, mass=PION_MASS)
            b = vector.obj(px=rng.normal(), py=rng.normal(), pz=0.0, mass=PION_MASS)
            d_phi = delta_phi(a, b)
            assert -math.pi < d_phi <= math.pi

    def test_delta_phi_wraps(self) -> None:
        a = vector.obj(px=-1.0, py=0.1, pz=0.0, mass=PION_MASS)
        b = vector.obj(px=-1.0, py=-0.1, pz=0.0, mass=PION_MASS)

        # raw difference is 2*pi - 2*atan(0.1), wrapped back below pi
        assert delta_phi(a, b) == pytest.approx(-2.0 * math.atan(0.1))
        assert delta_phi(b, a) == pytest.approx(2.0 * math.atan(0.1))

    def test_phi_charge_independent_of_track_order(self, pion_pair: List[Track]) -> None:
        vectors = [track_four_vector(t) for t in pion_pair]
        swapped_tracks = pion_pair[::-1]
        swapped_vectors = vectors[::-1]

        assert phi_charge(pion_pair, vectors) == pytest.approx(
            phi_charge(swapped_tracks, swapped_vectors)
        )

    def test_phi_random_matches_charge_or_shifted(self, pion_pair: List[Track]) -> None:
        """Swapping the daughters flips the difference vector, shifting phi by pi."""
        vectors = [track_four_vector(t) for t in pion_pair]
        reference = phi_charge(pion_pair, vectors)
        rng = np.random.default_rng(1)

        for _ in range(20):
            diff = _wrapped_difference(phi_random(vectors, rng), reference)
            assert (
                diff == pytest.approx(0.0, abs=1e-9)
                or diff == pytest.approx(math.pi, abs=1e-9)
                or diff == pytest.approx(2.0 * math.pi, abs=1e-9)
            )

    def test_phi_random_without_rng(self, pion_pair: List[Track]) -> None:
        vectors = [track_four_vector(t) for t in pion_pair]

        assert -math.pi < phi_random(vectors) <= math.pi
