"""
Event acceptance

Staged collision selection of the Lambda task and the simple vertex / gap-side
requirement of the UPC task.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .cuts import EventSelectionCuts, UpcCuts
from .data_model import Collision, EventSelectionBit

if TYPE_CHECKING:
    from .histograms import HistogramRegistry

EVENT_COUNTER = "hNEvents"

EVENT_COUNTER_LABELS: tuple[str, ...] = (
    "all",
    "sel8",
    "TVX",
    "zvertex",
    "TFBorder",
    "ITSROFBorder",
    "isTOFVertexMatched",
    "isGoodZvtxFT0vsPV",
    "Applied selected",
)


def _count(registry: HistogramRegistry | None, stage: int) -> None:
    if registry is not None:
        registry.fill(EVENT_COUNTER, stage + 0.5)


def accept_event(
    collision: Collision,
    cuts: EventSelectionCuts,
    registry: HistogramRegistry | None = None,
) -> bool:
    """
    Apply the staged event selection.

    Gates are tested in a fixed order and the first failing one rejects the
    event. When a registry is given, the pass-through counter is filled after
    every gate, so stage N is only reachable once stages 1..N-1 passed.

    Args:
        collision: Collision to test
        cuts: Event-selection toggles
        registry: Optional registry holding the `hNEvents` counter

    Returns:
        True if the event is accepted
    """
    if cuts.sel8 and not collision.sel8:
        return False
    _count(registry, 1)

    if cuts.trigger_tvx and not collision.selection_bit(EventSelectionBit.IS_TRIGGER_TVX):
        return False
    _count(registry, 2)

    if cuts.cut_z_vertex and abs(collision.pos_z) > cuts.z_vertex_max:
        return False
    _count(registry, 3)

    if cuts.no_time_frame_border and not collision.selection_bit(
        EventSelectionBit.NO_TIME_FRAME_BORDER
    ):
        return False
    _count(registry, 4)

    if cuts.no_its_ro_frame_border and not collision.selection_bit(
        EventSelectionBit.NO_ITS_RO_FRAME_BORDER
    ):
        return False
    _count(registry, 5)

    if cuts.vertex_tof_matched and not collision.selection_bit(
        EventSelectionBit.IS_VERTEX_TOF_MATCHED
    ):
        return False
    _count(registry, 6)

    if cuts.good_zvtx_ft0_vs_pv and not collision.selection_bit(
        EventSelectionBit.IS_GOOD_ZVTX_FT0_VS_PV
    ):
        return False
    _count(registry, 7)

    return True


def collision_passes_upc_cuts(collision: Collision, cuts: UpcCuts) -> bool:
    """Vertex-position and gap-side requirement for UPC collisions."""
    if abs(collision.pos_z) > cuts.z_vertex_max:
        return False
    if cuts.specify_gap_side and collision.gap_side != cuts.gap_side:
        return False
    return True
