"""
Cut parameter sets

Every selection function receives one of these frozen dataclasses. Defaults
reproduce the standard values of the two analysis tasks; TOML sections
override them field by field through `from_dict`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, TypeVar

from .exceptions import ConfigurationError

_CutsT = TypeVar("_CutsT", bound="_CutSet")


class _CutSet:
    """Mixin providing validated construction from a TOML table."""

    @classmethod
    def from_dict(cls: type[_CutsT], values: Mapping[str, Any] | None) -> _CutsT:
        """
        Build the cut set from a mapping, keeping defaults for absent keys.

        Args:
            values: Parsed TOML table (may be None or empty)

        Returns:
            New cut set instance

        Raises:
            ConfigurationError: If the mapping contains unknown keys or a
                value of the wrong kind
        """
        if not values:
            return cls()

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(values) - set(known))
        if unknown:
            raise ConfigurationError(
                f"Unknown parameter(s) for {cls.__name__}: {', '.join(unknown)}\n"
                f"Allowed: {', '.join(sorted(known))}"
            )

        kwargs: dict[str, Any] = {}
        for name, value in values.items():
            default = getattr(cls, name)
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ConfigurationError(
                        f"{cls.__name__}.{name} must be a boolean, got {value!r}"
                    )
            elif isinstance(default, int):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigurationError(
                        f"{cls.__name__}.{name} must be an integer, got {value!r}"
                    )
            elif isinstance(default, float):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigurationError(
                        f"{cls.__name__}.{name} must be a number, got {value!r}"
                    )
                value = float(value)
            kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class EventSelectionCuts(_CutSet):
    """Toggles and bound of the staged event acceptance."""

    sel8: bool = False
    trigger_tvx: bool = False
    cut_z_vertex: bool = False
    z_vertex_max: float = 10.0
    no_time_frame_border: bool = False
    no_its_ro_frame_border: bool = False
    vertex_tof_matched: bool = True
    good_zvtx_ft0_vs_pv: bool = True


@dataclass(frozen=True)
class TrackSelectionCuts(_CutSet):
    """Global track-quality cuts."""

    min_pt: float = 0.15
    max_eta: float = 0.8
    max_dca_xy: float = 0.5
    max_dca_z: float = 2.0
    require_primary: bool = True
    min_tpc_findable: float = 50.0
    min_tpc_crossed_rows: float = 70.0
    max_crossed_rows_over_findable: float = 1.2
    max_tpc_chi2: float = 4.0
    max_its_chi2: float = 36.0
    require_pv_contributor: bool = True


@dataclass(frozen=True)
class SingleTrackCuts(_CutSet):
    """Quality cuts on V0 daughter tracks.

    `require_tof` / `require_tpc` also switch on the daughter n-sigma
    windows of the V0 selection.
    """

    require_its: bool = False
    require_tpc: bool = False
    require_tof: bool = False
    min_its_n_cls: float = 4.0
    min_tpc_n_cls_found: float = 80.0
    min_tpc_crossed_rows: float = 80.0
    max_tpc_chi2: float = 4.0
    eta_min: float = -0.8
    eta_max: float = 0.8


@dataclass(frozen=True)
class PidCuts(_CutSet):
    """Symmetric n-sigma windows for single-track PID."""

    tpc_n_sigma: float = 4.0
    tof_n_sigma: float = 4.0
    strict_tof: bool = False


@dataclass(frozen=True)
class V0SelectionCuts(_CutSet):
    """Topological and kinematic Lambda / anti-Lambda cuts."""

    require_single_track_selection: bool = False
    min_v0_radius: float = 0.4
    min_cos_pa: float = 0.995
    dca_neg_to_pv: float = 0.05
    dca_pos_to_pv: float = 0.05
    max_dca_v0_daughters: float = 1.0
    max_dca_v0_daughters_prefilter: float = 0.5
    n_sigma_tpc_min: float = -3.0
    n_sigma_tpc_max: float = 3.0
    n_sigma_tof_min: float = -3.0
    n_sigma_tof_max: float = 3.0
    y_min: float = -0.5
    y_max: float = 0.5


@dataclass(frozen=True)
class JetCuts(_CutSet):
    """Event and jet requirements of the jet-track QA process."""

    z_vertex_max: float = 10.0
    min_jet_pt: float = 15.0
    jet_r: float = 0.4


@dataclass(frozen=True)
class UpcCuts(_CutSet):
    """Collision, track, PID and system cuts of the UPC rho task."""

    specify_gap_side: bool = True
    gap_side: int = 2
    require_tof: bool = False
    z_vertex_max: float = 10.0
    zn_energy_cut: float = 0.0
    zn_time_cut: float = 2.0
    tpc_n_sigma_pi: float = 3.0
    max_dca_z: float = 1.0
    max_eta: float = 0.9
    system_mass_min: float = 0.5
    system_mass_max: float = 1.2
    system_pt_max: float = 0.1
    system_y_max: float = 0.9
