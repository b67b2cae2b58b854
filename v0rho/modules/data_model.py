"""
Per-event value types read by the selection and reconstruction code.

This module defines:
- collision records with event-selection bits and ZDC readings (`Collision`)
- reconstructed tracks with quality, DCA and PID information (`Track`)
- V0 decay candidates referencing two daughter tracks (`V0Candidate`)
- charged jets used by the jet-track QA process (`Jet`)
- the per-event bundle handed to the tasks (`EventRecord`)

All objects are immutable; cuts are pure predicates over them. Field
defaults describe an object with nothing measured and fail the quality cuts.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass

from .exceptions import DataLoadError

# n-sigma value of a detector without a PID response
NO_PID = -999.0


class EventSelectionBit(enum.IntFlag):
    """Event-selection bits stored in `Collision.selection_bits`."""

    IS_TRIGGER_TVX = 1 << 0
    NO_TIME_FRAME_BORDER = 1 << 1
    NO_ITS_RO_FRAME_BORDER = 1 << 2
    IS_VERTEX_TOF_MATCHED = 1 << 3
    IS_GOOD_ZVTX_FT0_VS_PV = 1 << 4


@dataclass(frozen=True)
class Collision:
    """Reconstructed collision (primary vertex) with quality flags."""

    index: int
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0
    num_contrib: int = 0
    sel8: bool = False
    selection_bits: int = 0
    gap_side: int = -1
    energy_common_zna: float = -999.0
    energy_common_znc: float = -999.0
    time_zna: float = -999.0
    time_znc: float = -999.0

    def selection_bit(self, bit: EventSelectionBit) -> bool:
        """Return True if the given event-selection bit is set."""
        return bool(self.selection_bits & bit)


@dataclass(frozen=True)
class Track:
    """Single reconstructed barrel track.

    Momentum is given in GeV/c, DCAs in cm. `sign` is the track charge.
    """

    index: int
    px: float
    py: float
    pz: float
    sign: int = 0
    dca_xy: float = 0.0
    dca_z: float = 0.0
    its_n_cls: int = 0
    its_chi2_ncl: float = 0.0
    tpc_n_cls_findable: int = 0
    tpc_n_cls_found: int = 0
    tpc_n_cls_crossed_rows: int = 0
    tpc_chi2_ncl: float = 0.0
    tpc_signal: float = 0.0
    has_its: bool = False
    has_tpc: bool = False
    has_tof: bool = False
    is_pv_contributor: bool = False
    is_primary_track: bool = False
    is_global_track: bool = False
    is_global_track_wo_dca: bool = False
    tpc_n_sigma_pi: float = NO_PID
    tpc_n_sigma_ka: float = NO_PID
    tpc_n_sigma_pr: float = NO_PID
    tpc_n_sigma_el: float = NO_PID
    tof_n_sigma_pi: float = NO_PID
    tof_n_sigma_ka: float = NO_PID
    tof_n_sigma_pr: float = NO_PID

    @property
    def pt(self) -> float:
        return math.hypot(self.px, self.py)

    @property
    def p(self) -> float:
        return math.sqrt(self.px * self.px + self.py * self.py + self.pz * self.pz)

    @property
    def eta(self) -> float:
        """Pseudorapidity; +-inf for tracks along the beam axis."""
        pt = self.pt
        if pt == 0.0:
            if self.pz == 0.0:
                return 0.0
            return math.copysign(math.inf, self.pz)
        return math.asinh(self.pz / pt)

    @property
    def phi(self) -> float:
        return math.atan2(self.py, self.px)

    @property
    def tpc_crossed_rows_over_findable_cls(self) -> float:
        if self.tpc_n_cls_findable <= 0:
            return 0.0
        return self.tpc_n_cls_crossed_rows / self.tpc_n_cls_findable


@dataclass(frozen=True)
class V0Candidate:
    """Neutral two-prong decay candidate.

    `pos_track_index` and `neg_track_index` refer to positions in the
    owning `EventRecord.tracks`.
    """

    index: int
    pos_track_index: int
    neg_track_index: int
    px: float
    py: float
    pz: float
    v0_radius: float = 0.0
    v0_cos_pa: float = -1.0
    dca_pos_to_pv: float = 0.0
    dca_neg_to_pv: float = 0.0
    dca_v0_daughters: float = 0.0
    m_lambda: float = 0.0
    m_anti_lambda: float = 0.0

    @property
    def pt(self) -> float:
        return math.hypot(self.px, self.py)


@dataclass(frozen=True)
class Jet:
    """Charged-particle jet; `r` is the resolution parameter times 100."""

    pt: float
    eta: float
    phi: float
    r: int = 0


@dataclass(frozen=True)
class EventRecord:
    """One collision together with its associated tracks, V0s and jets."""

    collision: Collision
    tracks: tuple[Track, ...] = ()
    v0s: tuple[V0Candidate, ...] = ()
    jets: tuple[Jet, ...] = ()

    def _track_at(self, position: int, role: str, v0: V0Candidate) -> Track:
        if not 0 <= position < len(self.tracks):
            raise DataLoadError(
                f"V0 {v0.index} in collision {self.collision.index} references "
                f"{role} track {position}, but the event has {len(self.tracks)} tracks"
            )
        return self.tracks[position]

    def pos_track(self, v0: V0Candidate) -> Track:
        """Resolve the positive daughter of a V0 candidate."""
        return self._track_at(v0.pos_track_index, "positive", v0)

    def neg_track(self, v0: V0Candidate) -> Track:
        """Resolve the negative daughter of a V0 candidate."""
        return self._track_at(v0.neg_track_index, "negative", v0)
