"""
Particle identification

Single-track pion/proton hypotheses use the TPC response with optional TOF
corroboration. Multi-track UPC systems use a joint cut: the tracks are
accepted together when their TPC pion n-sigma values lie inside an
n-dimensional sphere.
"""

from __future__ import annotations

from typing import Iterable

from .cuts import PidCuts
from .data_model import Track


def _passes(tpc_n_sigma: float, tof_n_sigma: float, has_tof: bool, cuts: PidCuts) -> bool:
    if abs(tpc_n_sigma) >= cuts.tpc_n_sigma:
        return False
    if not has_tof:
        return not cuts.strict_tof
    return abs(tof_n_sigma) < cuts.tof_n_sigma


def track_pid_pion(track: Track, cuts: PidCuts) -> bool:
    """Pion hypothesis: TPC window, and TOF window when TOF is available."""
    return _passes(track.tpc_n_sigma_pi, track.tof_n_sigma_pi, track.has_tof, cuts)


def track_pid_proton(track: Track, cuts: PidCuts) -> bool:
    """Proton hypothesis: TPC window, and TOF window when TOF is available."""
    return _passes(track.tpc_n_sigma_pr, track.tof_n_sigma_pr, track.has_tof, cuts)


def tracks_pass_pion_pid(tracks: Iterable[Track], n_sigma: float) -> bool:
    """
    Joint pion PID of a track set.

    The sum of squared TPC pion n-sigma values must stay below
    `n_sigma**2`. An empty set passes.
    """
    radius2 = sum(track.tpc_n_sigma_pi**2 for track in tracks)
    return radius2 < n_sigma**2


def total_charge(tracks: Iterable[Track]) -> int:
    """Sum of the track charges."""
    return sum(track.sign for track in tracks)
