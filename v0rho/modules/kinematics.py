"""
Four-vector reconstruction and decay-plane angles

Tracks are promoted to Lorentz vectors with the `vector` package under a
fixed mass hypothesis, summed into a system, and the two-track system
provides the azimuthal angle between the sum and difference vectors.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import vector

from .cuts import UpcCuts
from .data_model import Track

PION_MASS = 0.13957039  # GeV/c^2, charged pion
LAMBDA_MASS = 1.115683  # GeV/c^2


def track_four_vector(track: Track, mass: float = PION_MASS) -> vector.MomentumObject4D:
    """Lorentz vector of a track under the given mass hypothesis."""
    return vector.obj(px=track.px, py=track.py, pz=track.pz, mass=mass)


def rapidity_at_mass(px: float, py: float, pz: float, mass: float) -> float:
    """Rapidity of a momentum assigned the given mass."""
    return vector.obj(px=px, py=py, pz=pz, mass=mass).rapidity


def reconstruct_system(
    four_vectors: Sequence[vector.MomentumObject4D],
) -> vector.MomentumObject4D:
    """
    Sum a set of Lorentz vectors.

    Args:
        four_vectors: Track four-vectors (any number, possibly none)

    Returns:
        Total four-vector; the zero vector for an empty input
    """
    system = vector.obj(px=0.0, py=0.0, pz=0.0, E=0.0)
    for p4 in four_vectors:
        system = system + p4
    return system


def system_passes_cuts(system: vector.MomentumObject4D, cuts: UpcCuts) -> bool:
    """Mass window, maximum pt and rapidity window of a reconstructed system."""
    mass = system.mass
    if mass < cuts.system_mass_min or mass > cuts.system_mass_max:
        return False
    if system.pt > cuts.system_pt_max:
        return False
    if abs(system.rapidity) > cuts.system_y_max:
        return False
    return True


def delta_phi(p1: vector.MomentumObject4D, p2: vector.MomentumObject4D) -> float:
    """Azimuthal difference phi(p1) - phi(p2), wrapped into (-pi, pi]."""
    d_phi = p1.phi - p2.phi
    if d_phi > math.pi:
        d_phi -= 2.0 * math.pi
    elif d_phi <= -math.pi:
        d_phi += 2.0 * math.pi
    return d_phi


def _sum_difference_phi(
    p_one: vector.MomentumObject4D, p_two: vector.MomentumObject4D
) -> float:
    return delta_phi(p_one + p_two, p_one - p_two)


def phi_random(
    four_vectors: Sequence[vector.MomentumObject4D],
    rng: np.random.Generator | None = None,
) -> float:
    """
    Decay-plane angle with randomly ordered daughters.

    The two tracks are shuffled with a freshly seeded generator on every
    call unless one is injected.
    """
    if rng is None:
        rng = np.random.default_rng()
    order = rng.permutation(2)
    return _sum_difference_phi(four_vectors[order[0]], four_vectors[order[1]])


def phi_charge(
    tracks: Sequence[Track], four_vectors: Sequence[vector.MomentumObject4D]
) -> float:
    """Decay-plane angle with the positive daughter taken first."""
    if tracks[0].sign > 0:
        p_one, p_two = four_vectors[0], four_vectors[1]
    else:
        p_one, p_two = four_vectors[1], four_vectors[0]
    return _sum_difference_phi(p_one, p_two)
