"""
Lambda / anti-Lambda candidate selection

The two hypotheses share the topological cuts and differ only in which
daughter is tested as the proton:
- Lambda:      positive daughter = proton, negative daughter = pion
- anti-Lambda: positive daughter = pion,   negative daughter = proton

NOTE: the daughter DCA-to-PV step tests |dca_pos_to_pv| against both the
negative and the positive threshold, and never looks at |dca_neg_to_pv|.
This is the behaviour of the established selection and is kept as is; the
prefilter below is the only place where the negative daughter DCA is cut.
"""

from __future__ import annotations

from .cuts import SingleTrackCuts, V0SelectionCuts
from .data_model import Track, V0Candidate
from .kinematics import LAMBDA_MASS, rapidity_at_mass
from .track_selection import passed_single_track_selection


def v0_passes_prefilter(v0: V0Candidate, cuts: V0SelectionCuts) -> bool:
    """Table-level V0 filter applied before any hypothesis is tested."""
    return (
        abs(v0.dca_pos_to_pv) > cuts.dca_pos_to_pv
        and abs(v0.dca_neg_to_pv) > cuts.dca_neg_to_pv
        and v0.dca_v0_daughters < cuts.max_dca_v0_daughters_prefilter
    )


def _in_window(value: float, low: float, high: float) -> bool:
    return low <= value <= high


def _passes_topology(
    v0: V0Candidate,
    pos: Track,
    neg: Track,
    cuts: V0SelectionCuts,
    single_track_cuts: SingleTrackCuts,
) -> bool:
    if v0.v0_radius < cuts.min_v0_radius or v0.v0_cos_pa < cuts.min_cos_pa:
        return False
    if abs(pos.eta) > single_track_cuts.eta_max or abs(neg.eta) > single_track_cuts.eta_max:
        return False
    if abs(v0.dca_pos_to_pv) < cuts.dca_neg_to_pv:
        return False
    if abs(v0.dca_pos_to_pv) < cuts.dca_pos_to_pv:
        return False
    if v0.dca_v0_daughters > cuts.max_dca_v0_daughters:
        return False
    return True


def _daughters_pass_quality(
    pos: Track,
    neg: Track,
    cuts: V0SelectionCuts,
    single_track_cuts: SingleTrackCuts,
) -> bool:
    if not cuts.require_single_track_selection:
        return True
    return passed_single_track_selection(pos, single_track_cuts) and (
        passed_single_track_selection(neg, single_track_cuts)
    )


def _in_rapidity_window(v0: V0Candidate, cuts: V0SelectionCuts) -> bool:
    y = rapidity_at_mass(v0.px, v0.py, v0.pz, LAMBDA_MASS)
    return _in_window(y, cuts.y_min, cuts.y_max)


def passed_lambda_selection(
    v0: V0Candidate,
    pos: Track,
    neg: Track,
    cuts: V0SelectionCuts,
    single_track_cuts: SingleTrackCuts,
) -> bool:
    """
    Lambda hypothesis (p from the positive, pi from the negative daughter).

    Args:
        v0: Candidate to test
        pos: Positive daughter track
        neg: Negative daughter track
        cuts: V0 topology, PID window and rapidity cuts
        single_track_cuts: Daughter quality cuts; its `require_tof` /
            `require_tpc` switches enable the n-sigma windows

    Returns:
        True if the candidate is selected as a Lambda
    """
    if not _daughters_pass_quality(pos, neg, cuts, single_track_cuts):
        return False

    if single_track_cuts.require_tof:
        if not _in_window(pos.tof_n_sigma_pr, cuts.n_sigma_tof_min, cuts.n_sigma_tof_max):
            return False
        if not _in_window(neg.tof_n_sigma_pi, cuts.n_sigma_tof_min, cuts.n_sigma_tof_max):
            return False

    if not _passes_topology(v0, pos, neg, cuts, single_track_cuts):
        return False

    if single_track_cuts.require_tpc:
        if not _in_window(pos.tpc_n_sigma_pr, cuts.n_sigma_tpc_min, cuts.n_sigma_tpc_max):
            return False
        if not _in_window(neg.tpc_n_sigma_pi, cuts.n_sigma_tpc_min, cuts.n_sigma_tpc_max):
            return False

    return _in_rapidity_window(v0, cuts)


def passed_anti_lambda_selection(
    v0: V0Candidate,
    pos: Track,
    neg: Track,
    cuts: V0SelectionCuts,
    single_track_cuts: SingleTrackCuts,
) -> bool:
    """Anti-Lambda hypothesis (pi from the positive, anti-p from the negative daughter)."""
    if not _daughters_pass_quality(pos, neg, cuts, single_track_cuts):
        return False

    if not _passes_topology(v0, pos, neg, cuts, single_track_cuts):
        return False

    if single_track_cuts.require_tof:
        if not _in_window(pos.tof_n_sigma_pi, cuts.n_sigma_tof_min, cuts.n_sigma_tof_max):
            return False
        if not _in_window(neg.tof_n_sigma_pr, cuts.n_sigma_tof_min, cuts.n_sigma_tof_max):
            return False

    if single_track_cuts.require_tpc:
        if not _in_window(pos.tpc_n_sigma_pi, cuts.n_sigma_tpc_min, cuts.n_sigma_tpc_max):
            return False
        if not _in_window(neg.tpc_n_sigma_pr, cuts.n_sigma_tpc_min, cuts.n_sigma_tpc_max):
            return False

    return _in_rapidity_window(v0, cuts)
