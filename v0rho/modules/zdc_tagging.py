"""
Neutron-emission tagging from the zero-degree neutron calorimeters

Each side (A, C) is either quiet (common energy below threshold) or shows
in-time neutron emission (energy above threshold and |time| within the
window). The four combinations define the event classes. Events that match
none of them (e.g. signal above threshold but out of time) are not tagged;
tagging never rejects an event.
"""

from __future__ import annotations

import enum

from .data_model import Collision


class NeutronClass(str, enum.Enum):
    """Neutron-emission topology; values are used as histogram path components."""

    ZERO_ZERO = "0n0n"
    X_ZERO = "Xn0n"
    ZERO_X = "0nXn"
    X_X = "XnXn"


def classify_neutron_topology(
    collision: Collision, energy_cut: float, time_cut: float
) -> NeutronClass | None:
    """
    Classify a collision by neutron emission on the A and C sides.

    Args:
        collision: Collision carrying ZNA/ZNC common energy and time
        energy_cut: Common-energy threshold (same on both sides)
        time_cut: Maximum |time| (ns) for an in-time signal

    Returns:
        The matching class, or None when no class applies
    """
    e_a = collision.energy_common_zna
    e_c = collision.energy_common_znc
    quiet_a = e_a < energy_cut
    quiet_c = e_c < energy_cut
    emits_a = e_a > energy_cut and abs(collision.time_zna) < time_cut
    emits_c = e_c > energy_cut and abs(collision.time_znc) < time_cut

    if quiet_a and quiet_c:
        return NeutronClass.ZERO_ZERO
    if emits_a and quiet_c:
        return NeutronClass.X_ZERO
    if quiet_a and emits_c:
        return NeutronClass.ZERO_X
    if emits_a and emits_c:
        return NeutronClass.X_X
    return None
