"""
Unit tests for TOMLConfig and the table regrouping of DataManager.

Tests configuration loading, validation and the translation of flat tables
into per-collision event records.
"""

from __future__ import annotations

import logging
from pathlib import Path

import awkward as ak
import pytest
import tomli_w

from v0rho.modules.cuts import EventSelectionCuts, UpcCuts
from v0rho.modules.data_handler import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_UPC_AXES,
    DataManager,
    TOMLConfig,
    check_branches,
    events_from_arrays,
    required_branches,
    table_branches,
)
from v0rho.modules.exceptions import BranchMissingError, ConfigurationError, DataLoadError
from v0rho.tests.utils import mock_columns


def _write(config_dir: Path, filename: str, content: dict) -> None:
    with open(config_dir / filename, "wb") as f:
        tomli_w.dump(content, f)


@pytest.mark.unit
class TestTOMLConfig:
    """Test TOMLConfig loading and section accessors."""

    def test_load_valid_config(self, config_dir_fixture: Path) -> None:
        config = TOMLConfig(str(config_dir_fixture))

        assert config.config_dir == config_dir_fixture
        assert "event_selection" in config.lambda_polarization
        assert "cuts" in config.upc_rho

    def test_cut_sections(self, config_dir_fixture: Path) -> None:
        config = TOMLConfig(config_dir_fixture)

        event_cuts = config.get_event_cuts()
        assert event_cuts.sel8
        assert event_cuts.z_vertex_max == 8.0
        assert config.get_single_track_cuts().require_tpc
        assert config.get_v0_cuts().min_cos_pa == 0.99
        assert config.get_jet_cuts().min_jet_pt == 10.0
        assert config.get_upc_cuts() == UpcCuts(gap_side=1, tpc_n_sigma_pi=2.5)

    def test_absent_sections_give_defaults(self, config_dir_fixture: Path) -> None:
        config = TOMLConfig(config_dir_fixture)

        assert config.get_track_cuts().min_pt == 0.15
        assert config.get_pid_cuts().tpc_n_sigma == 4.0

    def test_missing_config_file(self, tmp_test_dir: Path) -> None:
        """Test error when a config file is missing."""
        with pytest.raises(ConfigurationError, match="not found"):
            TOMLConfig(tmp_test_dir)

    def test_invalid_toml(self, config_dir_fixture: Path) -> None:
        (config_dir_fixture / "upc_rho.toml").write_text("[cuts\ngap_side = ")

        with pytest.raises(ConfigurationError, match="Error parsing"):
            TOMLConfig(config_dir_fixture)

    def test_section_must_be_table(self, config_dir_fixture: Path) -> None:
        _write(config_dir_fixture, "lambda_polarization.toml", {"event_selection": 3})

        with pytest.raises(ConfigurationError, match="must be a table"):
            TOMLConfig(config_dir_fixture).get_event_cuts()

    def test_unknown_cut_rejected(self, config_dir_fixture: Path) -> None:
        _write(config_dir_fixture, "upc_rho.toml", {"cuts": {"gapside": 2}})

        with pytest.raises(ConfigurationError, match="gapside"):
            TOMLConfig(config_dir_fixture).get_upc_cuts()

    def test_upc_axes_override(self, config_dir_fixture: Path) -> None:
        axes = TOMLConfig(config_dir_fixture).get_upc_axes()

        assert set(axes) == set(DEFAULT_UPC_AXES)
        assert axes["m_cut"].nbins == 35
        assert axes["pt_quantile"].nbins == 10
        assert axes["phi"].nbins == 180

    def test_upc_axes_unknown_name(self, config_dir_fixture: Path) -> None:
        _write(config_dir_fixture, "upc_rho.toml", {"axes": {"mass": [10, 0.0, 1.0]}})

        with pytest.raises(ConfigurationError, match="mass"):
            TOMLConfig(config_dir_fixture).get_upc_axes()

    def test_upc_axes_not_a_list(self, config_dir_fixture: Path) -> None:
        _write(config_dir_fixture, "upc_rho.toml", {"axes": {"m": 100}})

        with pytest.raises(ConfigurationError, match="must be a list"):
            TOMLConfig(config_dir_fixture).get_upc_axes()

    def test_tree_names_and_output(self, config_dir_fixture: Path) -> None:
        config = TOMLConfig(config_dir_fixture)

        names = config.get_tree_names()
        assert names["collisions"] == "O2collision"
        assert names["tracks"] == "O2track"
        assert names["v0s"] == "v0s"
        assert config.get_output_file() == "results.root"

    def test_unknown_tree_rejected(self, config_dir_fixture: Path) -> None:
        _write(config_dir_fixture, "data.toml", {"input": {"cascades": "O2cascade"}})

        with pytest.raises(ConfigurationError, match="cascades"):
            TOMLConfig(config_dir_fixture).get_tree_names()

    def test_task_switches(self, config_dir_fixture: Path) -> None:
        switches = TOMLConfig(config_dir_fixture).get_task_switches()

        assert switches == {"process_v0": True, "process_jet_tracks": False}

    def test_task_switch_must_be_bool(self, config_dir_fixture: Path) -> None:
        _write(config_dir_fixture, "lambda_polarization.toml", {"task": {"process_v0": 1}})

        with pytest.raises(ConfigurationError, match="boolean"):
            TOMLConfig(config_dir_fixture).get_task_switches()

    def test_packaged_defaults_match_dataclasses(self) -> None:
        """The shipped configuration reproduces the built-in defaults."""
        config = TOMLConfig(DEFAULT_CONFIG_DIR)

        assert config.get_event_cuts() == EventSelectionCuts()
        assert config.get_upc_cuts() == UpcCuts()
        assert config.get_output_file() == "AnalysisResults.root"


@pytest.mark.unit
class TestEventRegrouping:
    """Flat tables regrouped into EventRecords."""

    def test_tracks_grouped_by_collision(self) -> None:
        events = events_from_arrays(
            mock_columns("collisions", 3, pos_z=[0.0, 1.0, 2.0]),
            tracks=mock_columns(
                "tracks", 4, collision_index=[2, 0, 2, -1], px=[0.1, 0.2, 0.3, 0.4]
            ),
        )

        assert len(events) == 3
        assert [t.index for t in events[0].tracks] == [1]
        assert events[1].tracks == ()
        assert [t.index for t in events[2].tracks] == [0, 2]
        assert events[2].collision.pos_z == 2.0

    def test_v0_daughters_translated_to_local_positions(self) -> None:
        events = events_from_arrays(
            mock_columns("collisions", 2),
            tracks=mock_columns(
                "tracks", 3, collision_index=[0, 1, 1], px=[0.5, 0.6, 0.7], sign=[1, 1, -1]
            ),
            v0s=mock_columns(
                "v0s", 1, collision_index=[1], pos_track_index=[1], neg_track_index=[2]
            ),
        )

        event = events[1]
        v0 = event.v0s[0]
        assert (v0.pos_track_index, v0.neg_track_index) == (0, 1)
        assert event.pos_track(v0).px == 0.6
        assert event.neg_track(v0).px == 0.7

    def test_v0_daughter_in_other_collision(self) -> None:
        with pytest.raises(DataLoadError, match="does not belong"):
            events_from_arrays(
                mock_columns("collisions", 2),
                tracks=mock_columns("tracks", 2, collision_index=[0, 1], sign=[1, -1]),
                v0s=mock_columns(
                    "v0s", 1, collision_index=[0], pos_track_index=[0], neg_track_index=[1]
                ),
            )

    def test_collision_index_out_of_range(self) -> None:
        with pytest.raises(DataLoadError, match="references collision 3"):
            events_from_arrays(
                mock_columns("collisions", 1),
                jets=mock_columns("jets", 1, collision_index=[3]),
            )

    def test_max_events(self, config_dir_fixture: Path) -> None:
        manager = DataManager(TOMLConfig(config_dir_fixture))
        tables = {"collisions": ak.Array(mock_columns("collisions", 4))}

        assert manager.count_events(tables) == 4
        assert manager.count_events(tables, max_events=2) == 2
        assert len(list(manager.iter_events(tables, max_events=2))) == 2

    def test_table_branches(self) -> None:
        assert table_branches("tracks")[0] == "collision_index"
        assert "index" not in table_branches("tracks")
        assert "collision_index" not in table_branches("collisions")
        assert "v0_cos_pa" in table_branches("v0s")


@pytest.mark.unit
class TestBranchValidation:
    """Required and QC-only branches of the input tables."""

    @pytest.mark.parametrize(
        "table,branch",
        [
            ("tracks", "is_pv_contributor"),
            ("tracks", "dca_xy"),
            ("tracks", "has_its"),
            ("tracks", "tpc_n_sigma_pi"),
            ("collisions", "sel8"),
            ("collisions", "gap_side"),
            ("collisions", "energy_common_zna"),
            ("v0s", "v0_cos_pa"),
            ("v0s", "m_lambda"),
            ("jets", "r"),
        ],
    )
    def test_missing_cut_branch_raises(self, table: str, branch: str) -> None:
        tables = {
            "collisions": mock_columns("collisions", 1),
            "tracks": mock_columns("tracks", 1),
            "v0s": mock_columns("v0s", 1, neg_track_index=[0]),
            "jets": mock_columns("jets", 1),
        }
        del tables[table][branch]

        with pytest.raises(BranchMissingError) as exc_info:
            events_from_arrays(**tables)
        assert exc_info.value.branch_name == branch

    def test_track_without_quality_branches_is_rejected(self) -> None:
        """A bare kinematics-only track table is refused instead of accepted by every cut."""
        tracks = {"collision_index": [0], "px": [0.5], "py": [0.0], "pz": [0.0], "sign": [1]}

        with pytest.raises(BranchMissingError):
            events_from_arrays(mock_columns("collisions", 1), tracks=tracks)

    def test_required_branches_exclude_qc_only(self) -> None:
        required = required_branches("tracks")

        assert "is_pv_contributor" in required
        assert "dca_xy" in required
        assert "tpc_signal" not in required
        assert "tpc_n_sigma_el" not in required
        assert set(required_branches("v0s")) == set(table_branches("v0s"))

    def test_missing_qc_branch_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        collisions = mock_columns("collisions", 1)
        del collisions["num_contrib"]
        tracks = mock_columns("tracks", 1)
        del tracks["tpc_signal"]

        with caplog.at_level(logging.WARNING, logger="V0Rho.DataManager"):
            events = events_from_arrays(collisions, tracks=tracks)

        assert events[0].collision.num_contrib == 0
        assert events[0].tracks[0].is_pv_contributor
        assert "num_contrib" in caplog.text
        assert "tpc_signal" in caplog.text

    def test_check_branches_reports_defaults(self) -> None:
        available = set(table_branches("collisions")) - {"pos_x", "pos_y"}

        assert check_branches("collisions", available) == ("pos_x", "pos_y")
        assert check_branches("collisions", table_branches("collisions")) == ()
