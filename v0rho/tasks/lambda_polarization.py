"""
Lambda V0 QA and jet-track QA task

Two per-collision processes sharing one histogram registry:
- process_v0: staged event selection, then Lambda / anti-Lambda selection of
  every prefiltered V0 with geometry, mass and daughter n-sigma histograms
- process_jet_tracks: vertex / sel8 event cut, global-track QA, selected
  track kinematics and charged-jet kinematics
"""

from __future__ import annotations

import logging

from ..modules.cuts import (
    EventSelectionCuts,
    JetCuts,
    PidCuts,
    SingleTrackCuts,
    TrackSelectionCuts,
    V0SelectionCuts,
)
from ..modules.data_handler import TOMLConfig
from ..modules.data_model import EventRecord
from ..modules.event_selection import EVENT_COUNTER, EVENT_COUNTER_LABELS, accept_event
from ..modules.histograms import Axis, HistogramRegistry
from ..modules.pid import track_pid_pion, track_pid_proton
from ..modules.track_selection import track_passes_cuts
from ..modules.v0_selection import (
    passed_anti_lambda_selection,
    passed_lambda_selection,
    v0_passes_prefilter,
)

JET_EVENT_COUNTER = "hNEventsJet"
JET_EVENT_COUNTER_LABELS = ("all", "zvertex", "sel8")


class LambdaJetPolarizationTask:
    """
    Lambda V0 QA and jet-track QA

    Attributes:
        registry: Histogram registry filled by both processes
        switches: Enabled processes ({"process_v0": bool, "process_jet_tracks": bool})
        n_events: Number of collisions handed to `process`
    """

    def __init__(
        self,
        registry: HistogramRegistry | None = None,
        event_cuts: EventSelectionCuts | None = None,
        track_cuts: TrackSelectionCuts | None = None,
        single_track_cuts: SingleTrackCuts | None = None,
        pid_cuts: PidCuts | None = None,
        v0_cuts: V0SelectionCuts | None = None,
        jet_cuts: JetCuts | None = None,
        switches: dict[str, bool] | None = None,
    ):
        self.registry = registry if registry is not None else HistogramRegistry("lambda-jet")
        self.event_cuts = event_cuts or EventSelectionCuts()
        self.track_cuts = track_cuts or TrackSelectionCuts()
        self.single_track_cuts = single_track_cuts or SingleTrackCuts()
        self.pid_cuts = pid_cuts or PidCuts()
        self.v0_cuts = v0_cuts or V0SelectionCuts()
        self.jet_cuts = jet_cuts or JetCuts()
        self.switches = {"process_v0": True, "process_jet_tracks": True}
        if switches:
            self.switches.update(switches)
        self.n_events = 0
        self.logger = logging.getLogger("V0Rho.LambdaJetPolarization")

        self._define_histograms()

    @classmethod
    def from_config(
        cls, config: TOMLConfig, registry: HistogramRegistry | None = None
    ) -> LambdaJetPolarizationTask:
        """Build the task with every cut set taken from the configuration"""
        return cls(
            registry=registry,
            event_cuts=config.get_event_cuts(),
            track_cuts=config.get_track_cuts(),
            single_track_cuts=config.get_single_track_cuts(),
            pid_cuts=config.get_pid_cuts(),
            v0_cuts=config.get_v0_cuts(),
            jet_cuts=config.get_jet_cuts(),
            switches=config.get_task_switches(),
        )

    def _define_histograms(self) -> None:
        add = self.registry.add
        axis_eta = Axis.uniform(30, -1.5, 1.5, "#eta")
        axis_phi = Axis.uniform(200, -1.0, 7.0, "#phi")
        axis_pt = Axis.uniform(200, 0.0, 200.0, "#it{p}_{T} (GeV/#it{c})")

        # jet-track QA
        add("h_track_pt", "track pT", [Axis.uniform(200, 0.0, 200.0, "#it{p}_{T,track} (GeV/#it{c})")])
        add("h_track_eta", "track #eta", [Axis.uniform(100, -1.0, 1.0, "#eta_{track}")])
        add("h_track_phi", "track #varphi", [Axis.uniform(80, -1.0, 7.0, "#varphi_{track}")])
        add("nJetsPerEvent", "nJetsPerEvent", [Axis.uniform(10, 0.0, 10.0)])
        add("FJetaHistogram", "FJetaHistogram", [axis_eta])
        add("FJphiHistogram", "FJphiHistogram", [axis_phi])
        add("FJptHistogram", "FJptHistogram", [axis_pt])

        add("hDCArToPv", "DCArToPv", [Axis.uniform(300, 0.0, 3.0)])
        add("hDCAzToPv", "DCAzToPv", [Axis.uniform(300, 0.0, 3.0)])
        add("rawpT", "rawpT", [Axis.uniform(1000, 0.0, 10.0)])
        for name in ("hIsPrim", "hIsGood", "hIsPrimCont"):
            add(name, name, [Axis.uniform(2, -0.5, 1.5)])
        add("hFindableTPCClusters", "hFindableTPCClusters", [Axis.uniform(200, 0.0, 200.0)])
        add("hFindableTPCRows", "hFindableTPCRows", [Axis.uniform(200, 0.0, 200.0)])
        add("hClustersVsRows", "hClustersVsRows", [Axis.uniform(200, 0.0, 2.0)])
        add("hTPCChi2", "hTPCChi2", [Axis.uniform(200, 0.0, 100.0)])
        add("hITSChi2", "hITSChi2", [Axis.uniform(200, 0.0, 100.0)])

        add("etaHistogram", "etaHistogram", [axis_eta])
        add("phiHistogram", "phiHistogram", [axis_phi])
        add("ptHistogram", "ptHistogram", [axis_pt])
        add("hPionPt", "PID-tagged pion pT", [axis_pt])
        add("hProtonPt", "PID-tagged proton pT", [axis_pt])

        # V0 QA
        add("V0Counts", "V0Counts", [Axis.uniform(10, 0.0, 10.0)])
        add("hPt", "hPt", [Axis.uniform(100, 0.0, 10.0)])
        mass_vs_pt = [Axis.uniform(100, 0.0, 10.0), Axis.uniform(200, 1.016, 1.216)]
        add("hMassVsPtLambda", "hMassVsPtLambda", mass_vs_pt)
        add("hMassVsPtAntiLambda", "hMassVsPtAntiLambda", mass_vs_pt)
        add("hMassLambda", "hMassLambda", [Axis.uniform(200, 0.9, 1.2)])
        add("hMassAntiLambda", "hMassAntiLambda", [Axis.uniform(200, 0.9, 1.2)])

        add("V0Radius", "V0Radius", [Axis.uniform(100, 0.0, 20.0)])
        add("CosPA", "CosPA", [Axis.uniform(100, 0.9, 1.0)])
        add("V0DCANegToPV", "V0DCANegToPV", [Axis.uniform(100, -1.0, 1.0)])
        add("V0DCAPosToPV", "V0DCAPosToPV", [Axis.uniform(100, -1.0, 1.0)])
        add("V0DCAV0Daughters", "V0DCAV0Daughters", [Axis.uniform(55, 0.0, 2.2)])

        for name in ("TPCNSigmaPosPi", "TPCNSigmaNegPi", "TPCNSigmaPosPr", "TPCNSigmaNegPr"):
            add(name, name, [Axis.uniform(100, -10.0, 10.0)])

        add(EVENT_COUNTER, EVENT_COUNTER, [Axis.uniform(10, 0.0, 10.0)])
        self.registry.set_bin_labels(EVENT_COUNTER, EVENT_COUNTER_LABELS)
        add(JET_EVENT_COUNTER, JET_EVENT_COUNTER, [Axis.uniform(4, 0.0, 4.0)])
        self.registry.set_bin_labels(JET_EVENT_COUNTER, JET_EVENT_COUNTER_LABELS)

    def process_v0(self, event: EventRecord) -> None:
        """
        Lambda / anti-Lambda selection of one collision

        Args:
            event: Collision with its tracks and V0 candidates
        """
        fill = self.registry.fill
        fill(EVENT_COUNTER, 0.5)
        if not accept_event(event.collision, self.event_cuts, self.registry):
            return
        fill(EVENT_COUNTER, 8.5)

        n_v0s = 0
        for v0 in event.v0s:
            if not v0_passes_prefilter(v0, self.v0_cuts):
                continue
            pos = event.pos_track(v0)
            neg = event.neg_track(v0)
            n_v0s += 1

            if passed_lambda_selection(v0, pos, neg, self.v0_cuts, self.single_track_cuts):
                fill("hPt", v0.pt)
                fill("V0Radius", v0.v0_radius)
                fill("CosPA", v0.v0_cos_pa)
                fill("V0DCANegToPV", v0.dca_neg_to_pv)
                fill("V0DCAPosToPV", v0.dca_pos_to_pv)
                fill("V0DCAV0Daughters", v0.dca_v0_daughters)
                fill("hMassVsPtLambda", v0.pt, v0.m_lambda)
                fill("hMassLambda", v0.m_lambda)
                fill("TPCNSigmaPosPr", pos.tpc_n_sigma_pr)
                fill("TPCNSigmaNegPi", neg.tpc_n_sigma_pi)

            if passed_anti_lambda_selection(v0, pos, neg, self.v0_cuts, self.single_track_cuts):
                fill("hMassVsPtAntiLambda", v0.pt, v0.m_anti_lambda)
                fill("hMassAntiLambda", v0.m_anti_lambda)
                fill("TPCNSigmaPosPi", pos.tpc_n_sigma_pi)
                fill("TPCNSigmaNegPr", neg.tpc_n_sigma_pr)

        fill("V0Counts", n_v0s)

    def process_jet_tracks(self, event: EventRecord) -> None:
        """Track and charged-jet QA of one collision"""
        fill = self.registry.fill
        fill(JET_EVENT_COUNTER, 0.5)
        if abs(event.collision.pos_z) > self.jet_cuts.z_vertex_max:
            return
        fill(JET_EVENT_COUNTER, 1.5)
        if not event.collision.sel8:
            return
        fill(JET_EVENT_COUNTER, 2.5)

        for track in event.tracks:
            if not track.is_global_track:
                continue
            fill("hDCArToPv", track.dca_xy)
            fill("hDCAzToPv", track.dca_z)
            fill("rawpT", track.pt)
            fill("hIsPrim", float(track.is_primary_track))
            fill("hIsGood", float(track.is_global_track_wo_dca))
            fill("hIsPrimCont", float(track.is_pv_contributor))
            fill("hFindableTPCClusters", track.tpc_n_cls_findable)
            fill("hFindableTPCRows", track.tpc_n_cls_crossed_rows)
            fill("hClustersVsRows", track.tpc_crossed_rows_over_findable_cls)
            fill("hTPCChi2", track.tpc_chi2_ncl)
            fill("hITSChi2", track.its_chi2_ncl)
            fill("h_track_pt", track.pt)
            fill("h_track_eta", track.eta)
            fill("h_track_phi", track.phi)

            if not track_passes_cuts(track, self.track_cuts):
                continue
            fill("ptHistogram", track.pt)
            fill("etaHistogram", track.eta)
            fill("phiHistogram", track.phi)
            if track_pid_pion(track, self.pid_cuts):
                fill("hPionPt", track.pt)
            if track_pid_proton(track, self.pid_cuts):
                fill("hProtonPt", track.pt)

        jet_r = round(self.jet_cuts.jet_r * 100.0)
        n_jets = 0
        for jet in event.jets:
            if jet.pt <= self.jet_cuts.min_jet_pt or jet.r != jet_r:
                continue
            fill("FJetaHistogram", jet.eta)
            fill("FJphiHistogram", jet.phi)
            fill("FJptHistogram", jet.pt)
            n_jets += 1
        fill("nJetsPerEvent", n_jets)

    def process(self, event: EventRecord) -> None:
        """Run the enabled processes on one collision"""
        self.n_events += 1
        if self.switches["process_v0"]:
            self.process_v0(event)
        if self.switches["process_jet_tracks"]:
            self.process_jet_tracks(event)

    def summary(self) -> dict[str, float]:
        """Event and candidate totals for the end-of-run log"""
        events = self.registry.get(EVENT_COUNTER)
        return {
            "collisions": self.n_events,
            "accepted (V0)": events.bin_content(8.5),
            "Lambda": self.registry.get("hMassLambda").entries,
            "anti-Lambda": self.registry.get("hMassAntiLambda").entries,
            "accepted (jet)": self.registry.get(JET_EVENT_COUNTER).bin_content(2.5),
        }
