"""
UPC rho(770) -> pi+ pi- reconstruction task

Per collision: collision QC, vertex / gap-side cut, neutron-emission tagging,
pion-candidate track selection, joint TPC pion PID and reconstruction of the
multi-pion system. Two-pion systems are histogrammed by total charge before
and after the system cuts; selected systems are additionally split by
neutron class. Neutral four- and six-pion systems get their own mass, pt and
rapidity histograms.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from ..modules.cuts import UpcCuts
from ..modules.data_handler import DEFAULT_UPC_AXES, TOMLConfig
from ..modules.data_model import EventRecord
from ..modules.event_selection import collision_passes_upc_cuts
from ..modules.histograms import Axis, HistogramRegistry
from ..modules.kinematics import (
    phi_charge,
    phi_random,
    reconstruct_system,
    system_passes_cuts,
    track_four_vector,
)
from ..modules.pid import total_charge, tracks_pass_pion_pid
from ..modules.track_selection import TRACK_COUNTER, TRACK_COUNTER_LABELS, upc_track_passes_cuts
from ..modules.zdc_tagging import NeutronClass, classify_neutron_topology

NO_SELECTION = "no-selection"
NEUTRON_CLASSES = (NO_SELECTION,) + tuple(c.value for c in NeutronClass)

# total charge of a two-pion system -> histogram folder
CHARGE_CLASSES = {
    0: "unlike-sign",
    2: "like-sign/positive",
    -2: "like-sign/negative",
}

M_TITLE = "m (GeV/#it{c}^{2})"
PT_TITLE = "p_{T} (GeV/#it{c})"


def _pair_folder(charge_class: str) -> str:
    """Pion-pair folder: both like-sign classes share one set of histograms."""
    return "unlike-sign" if charge_class == "unlike-sign" else "like-sign"


class UpcRhoAnalysisTask:
    """
    Reconstruction of exclusive multi-pion systems in ultra-peripheral collisions

    Attributes:
        registry: Histogram registry filled by `process_reco`
        cuts: Collision, track, PID and system cuts
        axes: Configurable histogram axes by name
        rng: Generator used for the random daughter ordering; None draws a
            freshly seeded one per pair
    """

    def __init__(
        self,
        registry: HistogramRegistry | None = None,
        cuts: UpcCuts | None = None,
        axes: dict[str, Axis] | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.registry = registry if registry is not None else HistogramRegistry("upc-rho")
        self.cuts = cuts or UpcCuts()
        self.axes = {
            name: Axis.from_spec(spec, title) for name, (title, spec) in DEFAULT_UPC_AXES.items()
        }
        if axes:
            self.axes.update(axes)
        self.rng = rng
        self.n_events = 0
        self.logger = logging.getLogger("V0Rho.UpcRhoAnalysis")

        self._define_histograms()

    @classmethod
    def from_config(
        cls, config: TOMLConfig, registry: HistogramRegistry | None = None
    ) -> UpcRhoAnalysisTask:
        """Build the task with cuts and axes taken from the configuration"""
        return cls(registry=registry, cuts=config.get_upc_cuts(), axes=config.get_upc_axes())

    def _define_histograms(self) -> None:
        add = self.registry.add
        ax = self.axes
        u = Axis.uniform

        # collision QC
        zdc_energy = u(250, -5.0, 20.0)
        zdc_time = u(200, -10.0, 10.0)
        pos_z = u(400, -20.0, 20.0, "z (cm)")
        zn_time_narrow = u(300, -1.5, 1.5)
        add("QC/collisions/hPosXY", ";x (cm);y (cm)", [u(2000, -0.1, 0.1), u(2000, -0.1, 0.1)])
        add("QC/collisions/hPosZ", ";z (cm)", [pos_z])
        add("QC/collisions/hNumContrib", ";number of contributors", [u(36, -0.5, 35.5)])
        add("QC/collisions/hZdcCommonEnergy", ";ZNA common energy;ZNC common energy", [zdc_energy, zdc_energy])
        add("QC/collisions/hZdcTime", ";ZNA time (ns);ZNC time (ns)", [zdc_time, zdc_time])
        add("QC/collisions/hZnaTimeVsCommonEnergy", ";ZNA common energy;ZNA time (ns)", [zdc_energy, zdc_time])
        add("QC/collisions/hZncTimeVsCommonEnergy", ";ZNC common energy;ZNC time (ns)", [zdc_energy, zdc_time])
        add("QC/collisions/hZnaTimeVsPosZ", ";z (cm);ZNA time (ns)", [pos_z, zn_time_narrow])
        add("QC/collisions/hZncTimeVsPosZ", ";z (cm);ZNC time (ns)", [pos_z, zn_time_narrow])
        add("QC/collisions/hPosZVsZnTimeAdd", ";(ZNA time + ZNC time)/2 (ns);z (cm)", [zn_time_narrow, pos_z])
        add("QC/collisions/hPosZVsZnTimeSub", ";(ZNA time - ZNC time)/2 (ns);z (cm)", [zn_time_narrow, pos_z])

        # track QC
        n_sigma_tpc = u(400, -10.0, 30.0)
        dca = u(1000, -5.0, 5.0)
        add("QC/tracks/raw/hTpcNSigmaPi", ";TPC n#sigma_{#pi}", [n_sigma_tpc])
        add("QC/tracks/raw/hTofNSigmaPi", ";TOF n#sigma_{#pi}", [u(400, -20.0, 20.0)])
        add("QC/tracks/raw/hTpcNSigmaEl", ";TPC n#sigma_{e}", [n_sigma_tpc])
        add("QC/tracks/raw/hDcaXYZ", ";DCA_{z} (cm);DCA_{xy} (cm)", [dca, dca])
        add("QC/tracks/raw/hItsNCls", ";ITS N_{cls}", [u(11, -0.5, 10.5)])
        add("QC/tracks/raw/hItsChi2NCl", ";ITS #chi^{2}/N_{cls}", [u(1000, 0.0, 100.0)])
        add("QC/tracks/raw/hTpcChi2NCl", ";TPC #chi^{2}/N_{cls}", [u(1000, 0.0, 100.0)])
        add("QC/tracks/raw/hTpcNClsFindable", ";TPC N_{cls} findable", [u(200, 0.0, 200.0)])
        add("QC/tracks/raw/hTpcNClsCrossedRows", ";TPC crossed rows", [u(200, 0.0, 200.0)])

        add("QC/tracks/cut/hTpcNSigmaPi2D", ";TPC n#sigma(#pi_{1});TPC n#sigma(#pi_{2})", [n_sigma_tpc, n_sigma_tpc])
        add("QC/tracks/cut/hTpcNSigmaEl2D", ";TPC n#sigma(e_{1});TPC n#sigma(e_{2})", [n_sigma_tpc, n_sigma_tpc])
        add("QC/tracks/cut/hTpcSignalVsPt", ";p_{T} (GeV/#it{c});TPC signal", [ax["pt"], u(500, 0.0, 500.0)])
        add("QC/tracks/cut/hRemainingTracks", ";remaining tracks", [u(21, -0.5, 20.5)])
        add("QC/tracks/cut/hDcaXYZ", ";DCA_{z} (cm);DCA_{xy} (cm)", [dca, dca])

        n_labels = len(TRACK_COUNTER_LABELS)
        add(TRACK_COUNTER, ";;counts", [u(n_labels, -0.5, n_labels - 0.5)])
        self.registry.set_bin_labels(TRACK_COUNTER, TRACK_COUNTER_LABELS)

        # pion pairs
        for stage in ("no-selection", "selected"):
            for sign in ("unlike-sign", "like-sign"):
                folder = f"pions/{stage}/{sign}"
                add(f"{folder}/hPt", ";p_{T}(#pi_{1}) (GeV/#it{c});p_{T}(#pi_{2}) (GeV/#it{c})", [ax["pt"], ax["pt"]])
                add(f"{folder}/hEta", ";#eta(#pi_{1});#eta(#pi_{2})", [ax["eta"], ax["eta"]])
                add(f"{folder}/hPhi", ";#phi(#pi_{1});#phi(#pi_{2})", [ax["phi"], ax["phi"]])

        # two-pion system before system cuts
        for charge_class in CHARGE_CLASSES.values():
            self._add_system_histograms(f"system/2pi/raw/{charge_class}", ax["m"], ax["pt"])

        # two-pion system after system cuts
        for neutron_class in NEUTRON_CLASSES:
            for charge_class in CHARGE_CLASSES.values():
                folder = f"system/2pi/cut/{neutron_class}/{charge_class}"
                add(f"{folder}/hM", f";{M_TITLE}", [ax["m_cut"]])
                add(f"{folder}/hPt", f";{PT_TITLE}", [ax["pt_cut"]])
                add(f"{folder}/hPt2", ";p_{T}^{2} (GeV^{2}/#it{c}^{2})", [ax["pt2"]])
                add(f"{folder}/hPtVsM", f";{M_TITLE};{PT_TITLE}", [ax["m_cut"], ax["pt_cut"]])
                add(f"{folder}/hY", ";y", [ax["y"]])
                add(f"{folder}/hPhiRandom", ";#phi", [ax["phi_asymm"]])
                add(f"{folder}/hPhiCharge", ";#phi", [ax["phi_asymm"]])
                add(f"{folder}/hPhiRandomVsM", f";{M_TITLE};#phi", [ax["m_cut"], ax["phi_asymm"]])
                add(f"{folder}/hPhiChargeVsM", f";{M_TITLE};#phi", [ax["m_cut"], ax["phi_asymm"]])
                momentum = [ax["momentum_from_phi"], ax["momentum_from_phi"]]
                add(f"{folder}/hPyVsPxRandom", ";p_{x} (GeV/#it{c});p_{y} (GeV/#it{c})", momentum)
                add(f"{folder}/hPyVsPxCharge", ";p_{x} (GeV/#it{c});p_{y} (GeV/#it{c})", momentum)
                add(f"{folder}/hMInPtQuantileBins", f";{M_TITLE};{PT_TITLE}", [ax["m_cut"], ax["pt_quantile"]])

        # four- and six-pion systems
        self._add_system_histograms("system/4pi", ax["m"], ax["pt"])
        self._add_system_histograms("system/6pi", ax["m"], ax["pt"])

    def _add_system_histograms(self, folder: str, m_axis: Axis, pt_axis: Axis) -> None:
        add = self.registry.add
        add(f"{folder}/hM", f";{M_TITLE}", [m_axis])
        add(f"{folder}/hPt", f";{PT_TITLE}", [pt_axis])
        add(f"{folder}/hPtVsM", f";{M_TITLE};{PT_TITLE}", [m_axis, pt_axis])
        add(f"{folder}/hY", ";y", [self.axes["y"]])

    def _fill_collision_qc(self, event: EventRecord) -> None:
        fill = self.registry.fill
        c = event.collision
        fill("QC/collisions/hPosXY", c.pos_x, c.pos_y)
        fill("QC/collisions/hPosZ", c.pos_z)
        fill("QC/collisions/hZdcCommonEnergy", c.energy_common_zna, c.energy_common_znc)
        fill("QC/collisions/hZdcTime", c.time_zna, c.time_znc)
        fill("QC/collisions/hZnaTimeVsCommonEnergy", c.energy_common_zna, c.time_zna)
        fill("QC/collisions/hZncTimeVsCommonEnergy", c.energy_common_znc, c.time_znc)
        fill("QC/collisions/hNumContrib", c.num_contrib)
        fill("QC/collisions/hZnaTimeVsPosZ", c.pos_z, c.time_zna)
        fill("QC/collisions/hZncTimeVsPosZ", c.pos_z, c.time_znc)
        fill("QC/collisions/hPosZVsZnTimeAdd", (c.time_zna + c.time_znc) / 2.0, c.pos_z)
        fill("QC/collisions/hPosZVsZnTimeSub", (c.time_zna - c.time_znc) / 2.0, c.pos_z)

    def _fill_system(self, folder: str, mass: float, pt: float, rapidity: float) -> None:
        fill = self.registry.fill
        fill(f"{folder}/hM", mass)
        fill(f"{folder}/hPt", pt)
        fill(f"{folder}/hPtVsM", mass, pt)
        fill(f"{folder}/hY", rapidity)

    def _fill_pions(self, folder: str, four_vectors) -> None:
        fill = self.registry.fill
        p1, p2 = four_vectors
        fill(f"{folder}/hPt", p1.pt, p2.pt)
        fill(f"{folder}/hEta", p1.eta, p2.eta)
        fill(f"{folder}/hPhi", p1.phi + math.pi, p2.phi + math.pi)

    def _fill_selected_system(
        self,
        folder: str,
        mass: float,
        pt: float,
        rapidity: float,
        phi_rand: float,
        phi_chg: float,
    ) -> None:
        fill = self.registry.fill
        fill(f"{folder}/hM", mass)
        fill(f"{folder}/hPt", pt)
        fill(f"{folder}/hPt2", pt * pt)
        fill(f"{folder}/hPtVsM", mass, pt)
        fill(f"{folder}/hY", rapidity)
        fill(f"{folder}/hPhiRandom", phi_rand)
        fill(f"{folder}/hPhiCharge", phi_chg)
        fill(f"{folder}/hPhiRandomVsM", mass, phi_rand)
        fill(f"{folder}/hPhiChargeVsM", mass, phi_chg)
        fill(f"{folder}/hPyVsPxRandom", pt * math.cos(phi_rand), pt * math.sin(phi_rand))
        fill(f"{folder}/hPyVsPxCharge", pt * math.cos(phi_chg), pt * math.sin(phi_chg))
        fill(f"{folder}/hMInPtQuantileBins", mass, pt)

    def process_reco(self, event: EventRecord) -> None:
        """
        Analyse one reconstructed UPC collision

        Args:
            event: Collision with its barrel tracks
        """
        self.n_events += 1
        fill = self.registry.fill
        self._fill_collision_qc(event)

        if not collision_passes_upc_cuts(event.collision, self.cuts):
            return

        neutron_class = classify_neutron_topology(
            event.collision, self.cuts.zn_energy_cut, self.cuts.zn_time_cut
        )

        cut_tracks = []
        for track in event.tracks:
            fill("QC/tracks/raw/hTpcNSigmaPi", track.tpc_n_sigma_pi)
            fill("QC/tracks/raw/hTofNSigmaPi", track.tof_n_sigma_pi)
            fill("QC/tracks/raw/hTpcNSigmaEl", track.tpc_n_sigma_el)
            fill("QC/tracks/raw/hDcaXYZ", track.dca_z, track.dca_xy)
            fill("QC/tracks/raw/hItsNCls", track.its_n_cls)
            fill("QC/tracks/raw/hItsChi2NCl", track.its_chi2_ncl)
            fill("QC/tracks/raw/hTpcChi2NCl", track.tpc_chi2_ncl)
            fill("QC/tracks/raw/hTpcNClsFindable", track.tpc_n_cls_findable)
            fill("QC/tracks/raw/hTpcNClsCrossedRows", track.tpc_n_cls_crossed_rows)
            fill(TRACK_COUNTER, 0)

            if not upc_track_passes_cuts(track, self.cuts, self.registry):
                continue
            cut_tracks.append(track)
            fill("QC/tracks/cut/hTpcSignalVsPt", track.pt, track.tpc_signal)
            fill("QC/tracks/cut/hDcaXYZ", track.dca_z, track.dca_xy)
        fill("QC/tracks/cut/hRemainingTracks", len(cut_tracks))

        if len(cut_tracks) == 2:
            first, second = cut_tracks
            fill("QC/tracks/cut/hTpcNSigmaPi2D", first.tpc_n_sigma_pi, second.tpc_n_sigma_pi)
            fill("QC/tracks/cut/hTpcNSigmaEl2D", first.tpc_n_sigma_el, second.tpc_n_sigma_el)

        if not tracks_pass_pion_pid(cut_tracks, self.cuts.tpc_n_sigma_pi):
            return
        fill(TRACK_COUNTER, 6, weight=2.0)

        n_tracks = len(cut_tracks)
        if n_tracks not in (2, 4, 6):
            return

        four_vectors = [track_four_vector(track) for track in cut_tracks]
        system = reconstruct_system(four_vectors)
        charge = total_charge(cut_tracks)
        mass = system.mass
        pt = system.pt
        rapidity = system.rapidity

        if n_tracks == 2:
            phi_rand = phi_random(four_vectors, self.rng)
            phi_chg = phi_charge(cut_tracks, four_vectors)
            charge_class = CHARGE_CLASSES.get(charge)
            if charge_class is None:
                return

            self._fill_pions(f"pions/no-selection/{_pair_folder(charge_class)}", four_vectors)
            self._fill_system(f"system/2pi/raw/{charge_class}", mass, pt, rapidity)

            if not system_passes_cuts(system, self.cuts):
                return

            self._fill_pions(f"pions/selected/{_pair_folder(charge_class)}", four_vectors)
            self._fill_selected_system(
                f"system/2pi/cut/{NO_SELECTION}/{charge_class}", mass, pt, rapidity, phi_rand, phi_chg
            )
            if neutron_class is not None:
                self._fill_selected_system(
                    f"system/2pi/cut/{neutron_class.value}/{charge_class}",
                    mass,
                    pt,
                    rapidity,
                    phi_rand,
                    phi_chg,
                )
        elif n_tracks == 4 and charge == 0:
            self._fill_system("system/4pi", mass, pt, rapidity)
        elif n_tracks == 6 and charge == 0:
            self._fill_system("system/6pi", mass, pt, rapidity)

    def process(self, event: EventRecord) -> None:
        self.process_reco(event)

    def summary(self) -> dict[str, float]:
        """Event and system totals for the end-of-run log"""
        selected = self.registry.get(f"system/2pi/cut/{NO_SELECTION}/unlike-sign/hM")
        return {
            "collisions": self.n_events,
            "2pi unlike-sign (raw)": self.registry.get("system/2pi/raw/unlike-sign/hM").entries,
            "2pi unlike-sign (selected)": selected.entries,
            "4pi": self.registry.get("system/4pi/hM").entries,
            "6pi": self.registry.get("system/6pi/hM").entries,
        }
