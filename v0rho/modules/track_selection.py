"""
Single-track quality selection

Three flavours share this module:
- `track_passes_cuts`: global track quality (kinematics, DCA, TPC/ITS fit)
- `passed_single_track_selection`: looser quality applied to V0 daughters
- `upc_track_passes_cuts`: UPC pion candidates with the Run 2 pt-dependent
  DCAxy bound

Every predicate short-circuits on the first failing requirement.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from .cuts import SingleTrackCuts, TrackSelectionCuts, UpcCuts
from .data_model import Track

if TYPE_CHECKING:
    from .histograms import HistogramRegistry

TRACK_COUNTER = "QC/tracks/hSelectionCounter"

TRACK_COUNTER_LABELS: tuple[str, ...] = (
    "all tracks",
    "PV contributor",
    "ITS + TPC hit",
    "TOF requirement",
    "DCA cut",
    "#eta cut",
    "2D TPC n#sigma_{#pi} cut",
)

# Run 2 parametrisation of the primary-track DCAxy resolution
DCA_XY_OFFSET = 0.0182
DCA_XY_SLOPE = 0.0350
DCA_XY_EXPONENT = 1.01


def track_passes_cuts(track: Track, cuts: TrackSelectionCuts) -> bool:
    """
    Global track-quality selection.

    Args:
        track: Track to test
        cuts: Track-quality thresholds

    Returns:
        True if every requirement is satisfied
    """
    if track.pt < cuts.min_pt:
        return False
    if abs(track.eta) > cuts.max_eta:
        return False
    if abs(track.dca_xy) > cuts.max_dca_xy:
        return False
    if abs(track.dca_z) > cuts.max_dca_z:
        return False
    if cuts.require_primary and not track.is_primary_track:
        return False
    if track.tpc_n_cls_findable < cuts.min_tpc_findable:
        return False
    if track.tpc_n_cls_crossed_rows < cuts.min_tpc_crossed_rows:
        return False
    if track.tpc_crossed_rows_over_findable_cls > cuts.max_crossed_rows_over_findable:
        return False
    if track.tpc_chi2_ncl > cuts.max_tpc_chi2:
        return False
    if track.its_chi2_ncl > cuts.max_its_chi2:
        return False
    if cuts.require_pv_contributor and not track.is_pv_contributor:
        return False
    return True


def passed_single_track_selection(track: Track, cuts: SingleTrackCuts) -> bool:
    """Quality requirements on a V0 daughter track."""
    if cuts.require_its and not track.has_its:
        return False
    if cuts.require_its and track.its_n_cls < cuts.min_its_n_cls:
        return False
    if not track.has_tpc:
        return False
    if track.tpc_n_cls_found < cuts.min_tpc_n_cls_found:
        return False
    if track.tpc_n_cls_crossed_rows < cuts.min_tpc_crossed_rows:
        return False
    if track.tpc_chi2_ncl > cuts.max_tpc_chi2:
        return False
    if track.eta < cuts.eta_min or track.eta > cuts.eta_max:
        return False
    if cuts.require_tof and not track.has_tof:
        return False
    return True


def dynamic_dca_xy_max(pt: float) -> float:
    """
    Maximum |DCAxy| (cm) allowed for a track of transverse momentum `pt`.

    Returns +inf for pt <= 0, where the parametrisation diverges.
    """
    if pt <= 0.0:
        return math.inf
    return DCA_XY_OFFSET + DCA_XY_SLOPE / pt**DCA_XY_EXPONENT


def upc_track_passes_cuts(
    track: Track,
    cuts: UpcCuts,
    registry: HistogramRegistry | None = None,
) -> bool:
    """
    Track selection of the UPC rho task (PID is applied separately).

    When a registry is given, `QC/tracks/hSelectionCounter` is filled at
    bins 1..5 as the track clears each stage.
    """
    if not track.is_pv_contributor:
        return False
    if registry is not None:
        registry.fill(TRACK_COUNTER, 1)

    if not track.has_its or not track.has_tpc:
        return False
    if registry is not None:
        registry.fill(TRACK_COUNTER, 2)

    if cuts.require_tof and not track.has_tof:
        return False
    if registry is not None:
        registry.fill(TRACK_COUNTER, 3)

    if abs(track.dca_z) > cuts.max_dca_z or abs(track.dca_xy) > dynamic_dca_xy_max(track.pt):
        return False
    if registry is not None:
        registry.fill(TRACK_COUNTER, 4)

    if abs(track.eta) > cuts.max_eta:
        return False
    if registry is not None:
        registry.fill(TRACK_COUNTER, 5)

    return True
