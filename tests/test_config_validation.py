"""
Tests for configuration validation and YAML loading.
"""

import pytest
from pathlib import Path

from spring_lattice.config import (
    LatticeConfig, PhysicsConfig, DynamicsConfig, ControlConfig,
    SchedulerConfig, OutputConfig, SimulationConfig,
    config_from_dict, load_config
)

DEFAULT_YAML = Path(__file__).parent.parent / "configs" / "default.yaml"


class TestLatticeConfigValidation:
    """Tests for lattice config validation."""

    def test_valid_config(self):
        cfg = LatticeConfig(width=30, height=30)
        is_valid, err = cfg.validate()
        assert is_valid
        assert err is None

    def test_zero_width_rejected(self):
        is_valid, err = LatticeConfig(width=0, height=5).validate()
        assert not is_valid
        assert "width" in err

    def test_negative_height_rejected(self):
        is_valid, err = LatticeConfig(width=5, height=-1).validate()
        assert not is_valid
        assert "height" in err

    def test_float_width_rejected(self):
        is_valid, err = LatticeConfig(width=2.5, height=5).validate()
        assert not is_valid

    def test_bool_height_rejected(self):
        is_valid, err = LatticeConfig(width=5, height=True).validate()
        assert not is_valid

    def test_anchor_outside_rejected(self):
        is_valid, err = LatticeConfig(width=3, height=3, anchors=[[0, 2], [3, 2]]).validate()
        assert not is_valid
        assert "anchor" in err

    def test_anchor_not_pair_rejected(self):
        is_valid, err = LatticeConfig(width=3, height=3, anchors=[[0, 1, 2]]).validate()
        assert not is_valid

    def test_scalar_anchor_rejected(self):
        is_valid, err = LatticeConfig(width=3, height=3, anchors=[1, 2]).validate()
        assert not is_valid
        assert "pair" in err

    def test_anchors_not_a_list_rejected(self):
        is_valid, err = LatticeConfig(width=3, height=3, anchors=5).validate()
        assert not is_valid

    def test_non_integer_anchor_rejected(self):
        is_valid, err = LatticeConfig(width=3, height=3, anchors=[[1.5, 0]]).validate()
        assert not is_valid
        assert "integers" in err

    def test_bool_anchor_rejected(self):
        is_valid, err = LatticeConfig(width=3, height=3, anchors=[[True, 0]]).validate()
        assert not is_valid


class TestPhysicsConfigValidation:
    """Tests for physical constants."""

    def test_defaults_valid(self):
        is_valid, err = PhysicsConfig().validate()
        assert is_valid

    def test_zero_mass_rejected(self):
        is_valid, err = PhysicsConfig(mass=0.0).validate()
        assert not is_valid
        assert "mass" in err

    def test_negative_damping_rejected(self):
        is_valid, err = PhysicsConfig(damping_coefficient=-0.1).validate()
        assert not is_valid

    def test_negative_spring_coefficient_rejected(self):
        is_valid, err = PhysicsConfig(spring_coefficient=-1.0).validate()
        assert not is_valid

    def test_spring_params_follow_constants(self):
        params = PhysicsConfig(spring_coefficient=4.0, rest_length=2.0).spring_params
        assert params.k == 4.0
        assert params.rest_length == 2.0

    def test_upward_gravity_allowed(self):
        is_valid, err = PhysicsConfig(gravity=9.81).validate()
        assert is_valid


class TestDynamicsConfigValidation:

    def test_defaults_valid(self):
        cfg = DynamicsConfig()
        assert cfg.validate() == (True, None)
        assert cfg.substep_height_threshold == 100
        assert cfg.small_lattice_substeps == 20

    def test_zero_dt_rejected(self):
        is_valid, err = DynamicsConfig(dt=0.0).validate()
        assert not is_valid
        assert "dt" in err

    def test_zero_workers_rejected(self):
        is_valid, err = DynamicsConfig(n_workers=0).validate()
        assert not is_valid
        assert "n_workers" in err

    def test_zero_substeps_rejected(self):
        is_valid, err = DynamicsConfig(small_lattice_substeps=0).validate()
        assert not is_valid


class TestOtherSections:

    def test_negative_seed_rejected(self):
        is_valid, err = ControlConfig(seed=-1).validate()
        assert not is_valid

    def test_benchmark_duration_must_be_positive(self):
        is_valid, err = SchedulerConfig(benchmark_duration_s=0.0).validate()
        assert not is_valid

    def test_empty_run_name_rejected(self):
        is_valid, err = OutputConfig(run_name="").validate()
        assert not is_valid


class TestSimulationConfig:
    """Tests for the combined config and its loaders."""

    def test_error_names_section(self):
        cfg = SimulationConfig(dynamics=DynamicsConfig(dt=-1.0))
        is_valid, err = cfg.validate()
        assert not is_valid
        assert err.startswith("dynamics:")

    def test_to_dict_has_every_section(self):
        d = SimulationConfig().to_dict()
        assert set(d) == {"lattice", "physics", "dynamics", "controls", "scheduler", "output"}
        assert d["lattice"]["width"] == 30

    def test_from_empty_dict_gives_defaults(self):
        assert config_from_dict({}) == SimulationConfig()
        assert config_from_dict(None) == SimulationConfig()

    def test_partial_section(self):
        cfg = config_from_dict({"lattice": {"width": 4, "height": 3}})
        assert cfg.lattice.width == 4
        assert cfg.lattice.y_offset == 10.0
        assert cfg.physics == PhysicsConfig()

    def test_unknown_section_rejected(self):
        with pytest.raises(ValueError, match="unknown section"):
            config_from_dict({"rendering": {}})

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="physics"):
            config_from_dict({"physics": {"stiffness": 3.0}})

    def test_malformed_anchors_raise_value_error(self):
        with pytest.raises(ValueError, match="anchor"):
            config_from_dict({"lattice": {"anchors": [1, 2]}})

    def test_invalid_value_rejected(self):
        with pytest.raises(ValueError, match="Invalid configuration"):
            config_from_dict({"physics": {"mass": -1.0}})

    def test_load_default_yaml(self):
        cfg = load_config(DEFAULT_YAML)
        assert cfg.lattice.width == 30
        assert cfg.lattice.anchors == [[0, 29], [29, 29]]
        assert cfg.dynamics.n_workers is None

    def test_load_yaml_from_tmp(self, tmp_path):
        path = tmp_path / "small.yaml"
        path.write_text(
            "lattice:\n"
            "  width: 5\n"
            "  height: 4\n"
            "controls:\n"
            "  gravity_enabled: false\n"
            "  seed: 7\n"
        )
        cfg = load_config(path)
        assert (cfg.lattice.width, cfg.lattice.height) == (5, 4)
        assert not cfg.controls.gravity_enabled
        assert cfg.controls.seed == 7

    def test_load_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == SimulationConfig()

    def test_load_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")
