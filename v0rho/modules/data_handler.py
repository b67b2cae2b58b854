"""
Configuration and input handling

- `TOMLConfig`: loads the TOML configuration of both tasks and turns its
  sections into cut sets and histogram axes
- `DataManager`: reads the flat collision / track / V0 / jet tables from a
  ROOT file with uproot and regroups them into per-collision `EventRecord`s
"""

from __future__ import annotations

import logging
import math
from dataclasses import fields
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

import awkward as ak
import numpy as np
import tomli
import uproot

from .cuts import (
    EventSelectionCuts,
    JetCuts,
    PidCuts,
    SingleTrackCuts,
    TrackSelectionCuts,
    UpcCuts,
    V0SelectionCuts,
)
from .data_model import Collision, EventRecord, Jet, Track, V0Candidate
from .exceptions import BranchMissingError, ConfigurationError, DataLoadError
from .histograms import Axis

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

# name -> (title, [nbins, low, high] or [0, edges...])
DEFAULT_UPC_AXES: dict[str, tuple[str, list[float]]] = {
    "m": ("m (GeV/#it{c}^{2})", [1000, 0.0, 10.0]),
    "m_cut": ("m (GeV/#it{c}^{2})", [70, 0.5, 1.2]),
    "pt": ("#it{p}_{T} (GeV/#it{c})", [1000, 0.0, 10.0]),
    "pt_cut": ("#it{p}_{T} (GeV/#it{c})", [300, 0.0, 0.3]),
    "pt2": ("#it{p}_{T}^{2} (GeV^{2}/#it{c}^{2})", [300, 0.0, 0.09]),
    "eta": ("#eta", [180, -0.9, 0.9]),
    "y": ("y", [180, -0.9, 0.9]),
    "phi": ("#phi", [180, 0.0, 2.0 * math.pi]),
    "phi_asymm": ("#Delta#phi", [182, -math.pi, math.pi]),
    "momentum_from_phi": ("p (GeV/#it{c})", [400, -0.1, 0.1]),
    "pt_quantile": (
        "#it{p}_{T} (GeV/#it{c})",
        [
            0,
            0.0,
            0.0181689,
            0.0263408,
            0.0330488,
            0.0390369,
            0.045058,
            0.0512604,
            0.0582598,
            0.066986,
            0.0788085,
            0.1,
        ],
    ),
}

DEFAULT_TREE_NAMES = {
    "collisions": "collisions",
    "tracks": "tracks",
    "v0s": "v0s",
    "jets": "jets",
}

DEFAULT_TASK_SWITCHES = {"process_v0": True, "process_jet_tracks": True}

# Branches only used for QC histograms; when absent they are filled from
# the dataclass defaults and a warning is logged. Every other field of a
# table is required.
QC_ONLY_BRANCHES: dict[str, frozenset[str]] = {
    "collisions": frozenset({"pos_x", "pos_y", "num_contrib"}),
    "tracks": frozenset(
        {
            "tpc_signal",
            "is_global_track_wo_dca",
            "tpc_n_sigma_ka",
            "tpc_n_sigma_el",
            "tof_n_sigma_ka",
        }
    ),
    "v0s": frozenset(),
    "jets": frozenset(),
}

OPTIONAL_TABLES = frozenset({"v0s", "jets"})

_ROW_TYPES = {
    "collisions": Collision,
    "tracks": Track,
    "v0s": V0Candidate,
    "jets": Jet,
}


def _field_names(cls: type) -> tuple[str, ...]:
    return tuple(f.name for f in fields(cls) if f.name != "index")


def table_branches(table: str) -> tuple[str, ...]:
    """All branches understood for a table (collision_index first for child tables)."""
    names = _field_names(_ROW_TYPES[table])
    if table == "collisions":
        return names
    return ("collision_index",) + names


def required_branches(table: str) -> tuple[str, ...]:
    """Branches a table must provide: everything read by a selection or a physics histogram."""
    return tuple(b for b in table_branches(table) if b not in QC_ONLY_BRANCHES[table])


def check_branches(
    table: str, available: Iterable[str], file_path: str | None = None
) -> tuple[str, ...]:
    """
    Validate the branches of one input table.

    Returns:
        QC-only branches that are missing and will take their default value

    Raises:
        BranchMissingError: If a required branch is missing
    """
    available = set(available)
    for branch in required_branches(table):
        if branch not in available:
            raise BranchMissingError(branch, file_path)
    return tuple(b for b in table_branches(table) if b not in available)


class TOMLConfig:
    """
    Load and manage the TOML configuration files

    - lambda_polarization.toml: cuts and process switches of the Lambda task
    - upc_rho.toml: cuts and histogram axes of the UPC rho task
    - data.toml: input tree names and default output file
    """

    def __init__(self, config_dir: str | Path | None = None):
        self.config_dir = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR
        self.logger = logging.getLogger("V0Rho.Config")

        self.lambda_polarization = self._load_toml("lambda_polarization.toml")
        self.upc_rho = self._load_toml("upc_rho.toml")
        self.data = self._load_toml("data.toml")

        self.logger.debug(f"Loaded configuration from {self.config_dir}")

    def _load_toml(self, filename: str) -> dict:
        """
        Load TOML configuration file with proper error handling

        Args:
            filename: Name of the TOML file to load

        Returns:
            dict: Parsed TOML configuration

        Raises:
            ConfigurationError: If file not found or parsing fails
        """
        config_path = self.config_dir / filename
        try:
            with open(config_path, "rb") as f:
                return tomli.load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Configuration file not found: {config_path}\n"
                f"Please ensure all config files are present in {self.config_dir}"
            )
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Error parsing TOML file {config_path}: {e}")

    def _section(self, document: dict, name: str) -> dict:
        section = document.get(name, {})
        if not isinstance(section, dict):
            raise ConfigurationError(f"Section [{name}] must be a table, got {section!r}")
        return section

    def get_event_cuts(self) -> EventSelectionCuts:
        return EventSelectionCuts.from_dict(
            self._section(self.lambda_polarization, "event_selection")
        )

    def get_track_cuts(self) -> TrackSelectionCuts:
        return TrackSelectionCuts.from_dict(
            self._section(self.lambda_polarization, "track_selection")
        )

    def get_single_track_cuts(self) -> SingleTrackCuts:
        return SingleTrackCuts.from_dict(
            self._section(self.lambda_polarization, "single_track_selection")
        )

    def get_pid_cuts(self) -> PidCuts:
        return PidCuts.from_dict(self._section(self.lambda_polarization, "pid"))

    def get_v0_cuts(self) -> V0SelectionCuts:
        return V0SelectionCuts.from_dict(self._section(self.lambda_polarization, "v0_selection"))

    def get_jet_cuts(self) -> JetCuts:
        return JetCuts.from_dict(self._section(self.lambda_polarization, "jet_selection"))

    def get_upc_cuts(self) -> UpcCuts:
        return UpcCuts.from_dict(self._section(self.upc_rho, "cuts"))

    def get_upc_axes(self) -> dict[str, Axis]:
        """
        Histogram axes of the UPC task

        Entries of the [axes] section override the defaults by name, using
        the configurable-axis list convention ([nbins, low, high] or
        [0, edge0, edge1, ...]).
        """
        overrides = self._section(self.upc_rho, "axes")
        unknown = sorted(set(overrides) - set(DEFAULT_UPC_AXES))
        if unknown:
            raise ConfigurationError(
                f"Unknown axis name(s) in upc_rho.toml: {', '.join(unknown)}\n"
                f"Allowed: {', '.join(sorted(DEFAULT_UPC_AXES))}"
            )

        axes = {}
        for name, (title, default_spec) in DEFAULT_UPC_AXES.items():
            spec = overrides.get(name, default_spec)
            if not isinstance(spec, list):
                raise ConfigurationError(f"Axis '{name}' must be a list, got {spec!r}")
            axes[name] = Axis.from_spec(spec, title)
        return axes

    def get_tree_names(self) -> dict[str, str]:
        """Tree name of each input table"""
        names = dict(DEFAULT_TREE_NAMES)
        configured = self._section(self.data, "input")
        unknown = sorted(set(configured) - set(names))
        if unknown:
            raise ConfigurationError(f"Unknown input table(s) in data.toml: {', '.join(unknown)}")
        names.update(configured)
        return names

    def get_output_file(self) -> str:
        return self._section(self.data, "output").get("file", "AnalysisResults.root")

    def get_task_switches(self) -> dict[str, bool]:
        """Which processes of the Lambda task are enabled"""
        switches = dict(DEFAULT_TASK_SWITCHES)
        configured = self._section(self.lambda_polarization, "task")
        for name, value in configured.items():
            if name not in switches:
                raise ConfigurationError(f"Unknown process switch: {name}")
            if not isinstance(value, bool):
                raise ConfigurationError(f"Process switch '{name}' must be a boolean")
            switches[name] = value
        return switches


def _group_rows(collision_index: np.ndarray, n_collisions: int, table: str) -> list[np.ndarray]:
    """
    Row numbers of a child table grouped by collision.

    Rows with a negative collision index are not associated to any collision
    and are dropped.
    """
    if np.any(collision_index >= n_collisions):
        bad = int(collision_index[collision_index >= n_collisions][0])
        raise DataLoadError(
            f"Table '{table}' references collision {bad}, "
            f"but only {n_collisions} collisions were read"
        )
    rows = np.flatnonzero(collision_index >= 0)
    order = rows[np.argsort(collision_index[rows], kind="stable")]
    counts = np.bincount(collision_index[rows], minlength=n_collisions)
    return np.split(order, np.cumsum(counts)[:-1])


def _columns(table: ak.Array | None, branches: tuple[str, ...]) -> dict[str, list[Any]]:
    if table is None:
        return {}
    return {name: ak.to_list(table[name]) for name in branches if name in table.fields}


class DataManager:
    """Load ROOT input tables and build per-collision event records"""

    def __init__(self, config: TOMLConfig):
        self.config = config
        self.tree_names = config.get_tree_names()
        self.logger = logging.getLogger("V0Rho.DataManager")

    def load_tables(self, file_path: str | Path) -> dict[str, ak.Array]:
        """
        Read all input tables from one ROOT file

        Args:
            file_path: Input ROOT file

        Returns:
            Dictionary {table: awkward array}; optional tables that are not
            in the file are omitted

        Raises:
            DataLoadError: If the file or a mandatory tree is missing
            BranchMissingError: If a required branch is missing
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise DataLoadError(
                f"Input file not found: {file_path}\n"
                f"Please check the path given on the command line"
            )

        tables: dict[str, ak.Array] = {}
        try:
            with uproot.open(file_path) as file:
                for table, tree_name in self.tree_names.items():
                    if tree_name not in file:
                        if table in OPTIONAL_TABLES:
                            self.logger.info(f"Optional tree '{tree_name}' not in {file_path}")
                            continue
                        raise DataLoadError(
                            f"Tree '{tree_name}' not found in {file_path}\n"
                            f"Available objects: {list(file.keys())}"
                        )

                    tree = file[tree_name]
                    available = set(tree.keys())
                    check_branches(table, available, str(file_path))

                    branches = [b for b in table_branches(table) if b in available]
                    tables[table] = tree.arrays(branches, library="ak")
                    self.logger.info(f"Loaded {table}: {len(tables[table])} rows")
        except (OSError, ValueError) as e:
            raise DataLoadError(f"Error reading ROOT file {file_path}: {e}")

        return tables

    def iter_events(
        self, tables: Mapping[str, ak.Array], max_events: int | None = None
    ) -> Iterator[EventRecord]:
        """Yield one EventRecord per collision, in collision order"""
        return iter_events(tables, max_events=max_events)

    def count_events(self, tables: Mapping[str, ak.Array], max_events: int | None = None) -> int:
        n = len(tables["collisions"])
        return n if max_events is None else min(n, max_events)


def iter_events(
    tables: Mapping[str, ak.Array], max_events: int | None = None
) -> Iterator[EventRecord]:
    """
    Regroup flat tables into per-collision records.

    Tracks keep their global row number as `Track.index`; V0 daughter
    references are translated from global track rows to positions inside
    the event's track tuple.

    Raises:
        DataLoadError: If a row points to a collision or track that does not
            exist or belongs to another collision
        BranchMissingError: If a table lacks a required branch
    """
    if "collisions" not in tables:
        raise DataLoadError("Input tables contain no 'collisions' table")

    logger = logging.getLogger("V0Rho.DataManager")
    for table, array in tables.items():
        defaulted = check_branches(table, array.fields)
        if defaulted:
            logger.warning(
                f"Table '{table}' has no branch(es) {', '.join(defaulted)}; "
                f"QC histograms of these quantities are filled with default values"
            )

    collisions = tables["collisions"]
    n_collisions = len(collisions)
    n_events = n_collisions if max_events is None else min(n_collisions, max_events)

    collision_columns = _columns(collisions, table_branches("collisions"))
    groups: dict[str, list[np.ndarray]] = {}
    columns: dict[str, dict[str, list[Any]]] = {}
    for table in ("tracks", "v0s", "jets"):
        array = tables.get(table)
        if array is None:
            continue
        index = ak.to_numpy(array["collision_index"]).astype(np.int64)
        groups[table] = _group_rows(index, n_collisions, table)
        columns[table] = _columns(array, table_branches(table)[1:])

    for i in range(n_events):
        collision = Collision(
            index=i, **{name: values[i] for name, values in collision_columns.items()}
        )

        tracks: tuple[Track, ...] = ()
        local: dict[int, int] = {}
        if "tracks" in groups:
            rows = groups["tracks"][i]
            tracks = tuple(
                Track(index=int(row), **{k: v[row] for k, v in columns["tracks"].items()})
                for row in rows
            )
            local = {int(row): position for position, row in enumerate(rows)}

        v0s: tuple[V0Candidate, ...] = ()
        if "v0s" in groups:
            v0_list = []
            for row in groups["v0s"][i]:
                values = {k: v[row] for k, v in columns["v0s"].items()}
                for key in ("pos_track_index", "neg_track_index"):
                    if values[key] not in local:
                        raise DataLoadError(
                            f"V0 {int(row)} references track {values[key]} "
                            f"which does not belong to collision {i}"
                        )
                    values[key] = local[values[key]]
                v0_list.append(V0Candidate(index=int(row), **values))
            v0s = tuple(v0_list)

        jets: tuple[Jet, ...] = ()
        if "jets" in groups:
            jets = tuple(
                Jet(**{k: v[row] for k, v in columns["jets"].items()})
                for row in groups["jets"][i]
            )

        yield EventRecord(collision=collision, tracks=tracks, v0s=v0s, jets=jets)


def events_from_arrays(
    collisions: Mapping[str, Any],
    tracks: Mapping[str, Any] | None = None,
    v0s: Mapping[str, Any] | None = None,
    jets: Mapping[str, Any] | None = None,
) -> list[EventRecord]:
    """
    Build event records from in-memory column dictionaries.

    Each argument maps branch names to equal-length sequences, in the same
    layout as the ROOT trees read by `DataManager.load_tables`.
    """
    tables = {"collisions": ak.Array(dict(collisions))}
    for name, table in (("tracks", tracks), ("v0s", v0s), ("jets", jets)):
        if table is not None:
            tables[name] = ak.Array(dict(table))
    return list(iter_events(tables))
