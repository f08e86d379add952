"""Test config resolution and validation with Pydantic."""

import pytest
from pydantic import ValidationError

from zdcq.schemas import ParamConfig, UserConfig, CLIConfig, InternalConfig
from zdcq.schemas.resolve import resolve_config, deep_merge

pytestmark = pytest.mark.unit


class TestConfigResolution:
    """Test resolve_config() precedence and merging."""

    def test_resolve_config_all_defaults(self):
        """Resolving with no user/CLI overrides uses all ParamConfig defaults."""
        config = resolve_config(ParamConfig(), None, None)

        assert isinstance(config, InternalConfig)
        assert config.calibration.energy == "ZDC/Energy"
        assert config.calibration.mean_vertex == "ZDC/vmean"
        assert config.calibration.min_entries_sparse_bin == 100
        assert config.selection.centrality_min == 0.0
        assert config.selection.centrality_max == 90.0
        assert config.input_path is None

    def test_default_recentering_grid(self):
        """Default identifiers cover 5 iterations of 5 steps."""
        config = resolve_config(ParamConfig(), None, None)
        grid = config.calibration.recentering

        assert len(grid) == 5
        assert all(len(steps) == 5 for steps in grid)
        assert grid[0][0] == "ZDC/recentering/it1_step1"
        assert grid[4][4] == "ZDC/recentering/it5_step5"

    def test_user_config_overrides_param_config(self):
        """UserConfig values override ParamConfig defaults."""
        user = UserConfig(MIN_ENTRIES_SPARSE_BIN=20)
        config = resolve_config(ParamConfig(), user, None)

        assert config.calibration.min_entries_sparse_bin == 20

    def test_cli_overrides_user(self):
        """Full precedence: CLI > User > Param."""
        user = UserConfig(INPUT_PATH="/data/user.parquet", LOG_LEVEL="warning")
        cli = CLIConfig(input_path="/data/cli.parquet")
        config = resolve_config(ParamConfig(), user, cli)

        # CLI won on input_path
        assert config.input_path == "/data/cli.parquet"
        # User still won on log level
        assert config.logging.level == "WARNING"

    def test_cli_calibration_dir(self):
        cli = CLIConfig(calibration_dir="/data/cal")
        config = resolve_config(ParamConfig(), UserConfig(CALIBRATION_DIR="/other"), cli)

        assert config.calibration.directory == "/data/cal"

    def test_dict_inputs_accepted(self):
        """Plain dicts are validated into their config classes."""
        config = resolve_config({}, {"BASE_DIR": "/tmp/out"}, {"log_level": "DEBUG"})

        assert config.base_dir == "/tmp/out"
        assert config.logging.level == "DEBUG"

    def test_internal_config_is_frozen(self):
        config = resolve_config(ParamConfig(), None, None)

        with pytest.raises(ValidationError):
            config.input_path = "/data/x.parquet"


class TestUserConfigAliases:
    """Test UserConfig flat aliases map correctly."""

    def test_calibration_aliases(self):
        user = UserConfig(
            ENERGY_CALIBRATION="Cal/Energy",
            MEAN_VERTEX_CALIBRATION="Cal/vmean",
            CALIBRATION_DIR="/data/cal",
        )
        config = resolve_config(ParamConfig(), user, None)

        assert config.calibration.energy == "Cal/Energy"
        assert config.calibration.mean_vertex == "Cal/vmean"
        assert config.calibration.directory == "/data/cal"

    def test_field_names_also_accepted(self):
        """populate_by_name allows the lowercase field names."""
        user = UserConfig(base_dir="/out", min_entries_sparse_bin=7)
        config = resolve_config(ParamConfig(), user, None)

        assert config.base_dir == "/out"
        assert config.calibration.min_entries_sparse_bin == 7

    def test_unknown_keys_ignored(self):
        user = UserConfig.model_validate({"BASE_DIR": "/out", "LEGACY_OPTION": 3})
        assert user.base_dir == "/out"

    def test_log_level_normalized(self):
        assert UserConfig(LOG_LEVEL=" debug ").log_level == "DEBUG"

    def test_nested_section_wins_over_flat_alias(self):
        user = UserConfig(
            MIN_ENTRIES_SPARSE_BIN=10,
            calibration={"min_entries_sparse_bin": 30},
        )
        config = resolve_config(ParamConfig(), user, None)

        assert config.calibration.min_entries_sparse_bin == 30

    def test_selection_and_output_sections(self):
        user = UserConfig(
            selection={"centrality_min": 10, "centrality_max": 50},
            output={"compression": "ZSTD"},
        )
        config = resolve_config(ParamConfig(), user, None)

        assert config.selection.centrality_min == 10.0
        assert config.selection.centrality_max == 50.0
        assert config.output.compression == "zstd"

    def test_axes_override(self):
        user = UserConfig(axes={"q": {"nbins": 50}})
        config = resolve_config(ParamConfig(), user, None)

        assert config.axes.q.nbins == 50
        assert config.axes.q.low == -2.0

    def test_disable_energy_calibration(self):
        """An empty identifier disables the family (None means 'no override')."""
        user = UserConfig(ENERGY_CALIBRATION="")
        config = resolve_config(ParamConfig(), user, None)

        assert config.calibration.energy == ""

    def test_none_in_nested_section_keeps_default(self):
        user = UserConfig(calibration={"energy": None})
        config = resolve_config(ParamConfig(), user, None)

        assert config.calibration.energy == "ZDC/Energy"

    def test_disable_recentering_slot(self):
        grid = [[f"R/it{i}_s{s}" for s in range(5)] for i in range(5)]
        grid[2][3] = None
        config = resolve_config(ParamConfig(), UserConfig(RECENTERING=grid), None)

        assert config.calibration.recentering[2][3] is None
        assert config.calibration.recentering[0][0] == "R/it0_s0"


class TestValidationRejects:
    """Merged values obey ParamConfig bounds."""

    def test_recentering_grid_wrong_iterations(self):
        grid = [["a"] * 5] * 4
        with pytest.raises(ValidationError, match="5 iterations"):
            resolve_config(ParamConfig(), UserConfig(RECENTERING=grid), None)

    def test_recentering_grid_wrong_steps(self):
        grid = [["a"] * 5] * 4 + [["a"] * 4]
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(RECENTERING=grid), None)

    def test_axis_range_checked(self):
        with pytest.raises(ValidationError, match="must exceed"):
            resolve_config(ParamConfig(), UserConfig(axes={"vz": {"low": 10, "high": -10}}), None)

    def test_min_entries_must_be_positive(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(MIN_ENTRIES_SPARSE_BIN=0), None)

    def test_centrality_window_order(self):
        with pytest.raises(ValidationError):
            resolve_config(
                ParamConfig(),
                UserConfig(selection={"centrality_min": 60, "centrality_max": 40}),
                None,
            )

    def test_unknown_compression(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(output={"compression": "brotli"}), None)

    def test_cli_rejects_bad_log_level(self):
        with pytest.raises(ValidationError):
            CLIConfig(log_level="LOUD")


class TestDeepMerge:

    def test_nested_merge(self):
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        override = {"b": {"d": 4, "e": 5}, "f": 6}

        assert deep_merge(base, override) == {"a": 1, "b": {"c": 2, "d": 4, "e": 5}, "f": 6}

    def test_lists_replaced(self):
        assert deep_merge({"x": [1, 2]}, {"x": [3]}) == {"x": [3]}

    def test_base_not_mutated(self):
        base = {"b": {"c": 2}}
        deep_merge(base, {"b": {"c": 5}})
        assert base == {"b": {"c": 2}}
