"""Tests for validator configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

if TYPE_CHECKING:
    from pathlib import Path

from causalcheck.config import ValidationConfig, load_config
from causalcheck.errors import ConfigError

# --- Tests for ValidationConfig ---


class TestValidationConfig:
    """Tests for ValidationConfig defaults and parsing."""

    def test_defaults(self) -> None:
        """Built-in limits and thresholds."""
        config = ValidationConfig()

        assert config.node_limit == 50
        assert config.edge_limit == 200
        assert config.min_options == 2
        assert config.max_options == 6
        assert config.low_confidence_threshold == 0.3
        assert config.low_std_threshold == 0.05
        assert config.structural_std_tolerance == 0.05
        assert (config.strength_min, config.strength_max) == (-1.0, 1.0)

    def test_from_dict(self) -> None:
        """Parse limits and thresholds sections."""
        data = {
            "limits": {"node_limit": 80, "max_options": 4},
            "thresholds": {"low_confidence": 0.5, "structural_std_tolerance": 0.02},
        }
        with patch.dict("os.environ", {}, clear=True):
            config = ValidationConfig.from_dict(data)

        assert config.node_limit == 80
        assert config.max_options == 4
        assert config.edge_limit == 200
        assert config.low_confidence_threshold == 0.5
        assert config.structural_std_tolerance == 0.02

    def test_empty_sections(self) -> None:
        """Empty sections fall back to defaults."""
        with patch.dict("os.environ", {}, clear=True):
            config = ValidationConfig.from_dict({"limits": None, "thresholds": {}})

        assert config == ValidationConfig()

    def test_env_overrides_file(self) -> None:
        """Environment variables take precedence over file values."""
        with patch.dict("os.environ", {"CAUSALCHECK_NODE_LIMIT": "120"}):
            config = ValidationConfig.from_dict({"limits": {"node_limit": 80}})

        assert config.node_limit == 120

    def test_empty_env_value_is_ignored(self) -> None:
        with patch.dict("os.environ", {"CAUSALCHECK_EDGE_LIMIT": ""}):
            config = ValidationConfig.from_dict({})

        assert config.edge_limit == 200

    def test_invalid_env_value(self) -> None:
        with (
            patch.dict("os.environ", {"CAUSALCHECK_MAX_OPTIONS": "many"}),
            pytest.raises(ConfigError) as exc_info,
        ):
            ValidationConfig.from_dict({})

        assert exc_info.value.key == "CAUSALCHECK_MAX_OPTIONS"

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            ({"logging": {}}, "logging"),
            ({"limits": {"vertex_limit": 3}}, "limits.vertex_limit"),
            ({"thresholds": {"low_belief": 0.1}}, "thresholds.low_belief"),
            ({"limits": ["node_limit"]}, "limits"),
            ({"limits": {"node_limit": "lots"}}, "limits.node_limit"),
            ({"limits": {"node_limit": True}}, "limits.node_limit"),
            ({"thresholds": {"low_std": "tiny"}}, "thresholds.low_std"),
        ],
    )
    def test_invalid_data(self, data: dict, key: str) -> None:
        """Unknown or malformed entries name the offending key."""
        with patch.dict("os.environ", {}, clear=True), pytest.raises(ConfigError) as exc_info:
            ValidationConfig.from_dict(data)

        assert exc_info.value.key == key

    def test_min_options_above_max(self) -> None:
        with pytest.raises(ConfigError, match="exceeds max_options"):
            ValidationConfig(min_options=5, max_options=3)

    def test_strength_range_from_dict(self) -> None:
        data = {"thresholds": {"strength_min": -2, "strength_max": 2.5}}
        with patch.dict("os.environ", {}, clear=True):
            config = ValidationConfig.from_dict(data)

        assert (config.strength_min, config.strength_max) == (-2.0, 2.5)

    def test_strength_range_must_be_ordered(self) -> None:
        with pytest.raises(ConfigError, match="must be below") as exc_info:
            ValidationConfig(strength_min=1.0, strength_max=-1.0)

        assert exc_info.value.key == "thresholds.strength_min"

    def test_negative_value(self) -> None:
        with pytest.raises(ConfigError, match="must not be negative"):
            ValidationConfig(low_std_threshold=-0.1)


# --- Tests for load_config ---


class TestLoadConfig:
    """Tests for loading configuration files."""

    def test_no_path_uses_defaults(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert load_config() == ValidationConfig()

    def test_no_path_still_reads_env(self) -> None:
        with patch.dict("os.environ", {"CAUSALCHECK_NODE_LIMIT": "30"}, clear=True):
            assert load_config().node_limit == 30

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "causalcheck.yaml"
        path.write_text("limits:\n  edge_limit: 300\nthresholds:\n  low_std: 0.1\n")

        with patch.dict("os.environ", {}, clear=True):
            config = load_config(path)

        assert config.edge_limit == 300
        assert config.low_std_threshold == 0.1

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "causalcheck.yaml"
        path.write_text("")

        with patch.dict("os.environ", {}, clear=True):
            assert load_config(path) == ValidationConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="File not found"):
            load_config(tmp_path / "nope.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "causalcheck.yaml"
        path.write_text("limits: [unclosed\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)

        assert exc_info.value.key == str(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "causalcheck.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigError, match="top level must be a mapping"):
            load_config(path)
