"""Tests for ResolverConfig validation and YAML loading."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from subflow import ConfigLoader, Ref, ResolverConfig, SubstitutionResolver
from subflow.engine.terms import DEFAULTS_KEY


def write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestResolverConfig:
    def test_defaults(self) -> None:
        config = ResolverConfig()
        assert config.max_depth == 100
        assert config.detect_cycles is True
        assert config.strict is False
        assert config.strict_dependencies is False
        assert config.remove_empty is True
        assert config.ref_prefix is None
        assert config.defaults_key == DEFAULTS_KEY
        assert config.leaf_types == []

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ResolverConfig(max_dept=5)  # type: ignore[call-arg]

    @pytest.mark.parametrize("depth", [0, -1, 10001])
    def test_max_depth_bounds(self, depth: int) -> None:
        with pytest.raises(ValidationError):
            ResolverConfig(max_depth=depth)

    def test_empty_prefix_normalized(self) -> None:
        assert ResolverConfig(ref_prefix="").ref_prefix is None

    def test_leaf_types_must_be_dotted(self) -> None:
        with pytest.raises(ValidationError, match="dotted path"):
            ResolverConfig(leaf_types=["DataFrame"])

    def test_frozen(self) -> None:
        config = ResolverConfig()
        with pytest.raises(ValidationError):
            config.strict = True  # type: ignore[misc]


class TestConfigLoader:
    def test_defaults_without_file(self) -> None:
        assert ConfigLoader().load_config() == ResolverConfig()

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "cfg.yml", "max_depth: 200\nstrict: true\n")
        config = ConfigLoader(path).load_config()
        assert config.max_depth == 200
        assert config.strict is True

    def test_missing_explicit_path_warns(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            config = ConfigLoader(tmp_path / "nope.yml").load_config()
        assert config == ResolverConfig()
        assert "does not exist" in caplog.text

    def test_env_var_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_config(tmp_path / "env.yml", "ref_prefix: '='\n")
        monkeypatch.setenv("SUBFLOW_CONFIG", str(path))
        assert ConfigLoader().load_config().ref_prefix == "="

    def test_explicit_path_beats_env_var(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        explicit = write_config(tmp_path / "explicit.yml", "max_depth: 7\n")
        env_path = write_config(tmp_path / "env.yml", "max_depth: 9\n")
        monkeypatch.setenv("SUBFLOW_CONFIG", str(env_path))
        assert ConfigLoader(explicit).load_config().max_depth == 7

    def test_standard_location(self, tmp_path: Path) -> None:
        # HOME points into tmp_path (see conftest)
        write_config(tmp_path / "home" / ".subflow" / "config.yml", "remove_empty: false\n")
        assert ConfigLoader().load_config().remove_empty is False

    def test_max_depth_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_config(tmp_path / "cfg.yml", "max_depth: 200\n")
        monkeypatch.setenv("SUBFLOW_MAX_DEPTH", "30")
        assert ConfigLoader(path).load_config().max_depth == 30

    def test_invalid_max_depth_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUBFLOW_MAX_DEPTH", "deep")
        with pytest.raises(ValueError, match="must be an integer"):
            ConfigLoader().load_config()

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "empty.yml", "")
        assert ConfigLoader(path).load_config() == ResolverConfig()

    def test_non_mapping_file_rejected(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "list.yml", "- a\n- b\n")
        with pytest.raises(ValueError, match="YAML dictionary"):
            ConfigLoader(path).load_config()

    def test_invalid_yaml_rejected(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "bad.yml", "max_depth: [1, 2\n")
        with pytest.raises(ValueError, match="Failed to load"):
            ConfigLoader(path).load_config()

    def test_invalid_values_rejected(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "bad.yml", "max_depth: 0\n")
        with pytest.raises(ValueError, match="Invalid resolver config"):
            ConfigLoader(path).load_config()

    def test_config_cached_on_loader(self, tmp_path: Path) -> None:
        path = write_config(tmp_path / "cfg.yml", "max_depth: 5\n")
        loader = ConfigLoader(path)
        first = loader.load_config()
        path.write_text("max_depth: 6\n", encoding="utf-8")
        assert loader.load_config() is first

    def test_loaded_config_drives_resolver(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path / "cfg.yml",
            "ref_prefix: '$'\nleaf_types:\n  - fractions.Fraction\n",
        )
        resolver = SubstitutionResolver(ConfigLoader(path).load_config())
        assert resolver.resolve({"x": "$x", "y": Ref("Y")}, {"$x": 1, "Y": 2}) == {"x": 1, "y": 2}
        assert resolver.classifier.leaf_types[0].__name__ == "Fraction"
