"""Unit tests for configuration system."""
import json
import pytest
import yaml

from tree_ensemble.config import (
    BoosterParams, load_params, load_yaml, save_params, parse_env_value, apply_environment_overrides
)
from tree_ensemble.config.params import DEFAULT_PARAMS
from tree_ensemble.utils.exceptions import ConfigurationError


class TestBoosterParams:
    """Test the parameter bag."""

    def test_aliases_normalized(self):
        """Test that alternative spellings map to canonical keys."""
        params = BoosterParams({'learning_rate': 0.1, 'reg_lambda': 2.0}, random_state=7)

        assert params.eta == 0.1
        assert params.reg_lambda == 2.0
        assert params.seed == 7
        assert params.to_dict() == {'eta': 0.1, 'lambda': 2.0, 'seed': 7}
        assert 'learning_rate' in params

    def test_defaults_not_stored(self):
        """Test that defaults are read but not stored."""
        params = BoosterParams()
        assert params.max_depth == 6
        assert params.objective == 'reg:squarederror'
        assert len(params) == 0
        assert params.to_dict(include_defaults=True) == DEFAULT_PARAMS

    def test_unknown_keys_pass_through(self):
        """Test that keys the runtime ignores are kept verbatim."""
        params = BoosterParams()
        params['grow_policy'] = 'lossguide'
        assert params['grow_policy'] == 'lossguide'
        assert params.get('absent', 'fallback') == 'fallback'
        with pytest.raises(KeyError):
            params['absent']

    def test_numeric_strings(self):
        """Test that numeric strings are accepted by typed accessors."""
        params = BoosterParams(max_depth="4", eta="0.05")
        assert params.max_depth == 4
        assert params.eta == 0.05

    @pytest.mark.parametrize("key,value", [
        ('max_depth', 4.5),
        ('eta', True),
        ('eta', 'fast'),
    ])
    def test_bad_numbers(self, key, value):
        """Test that non-numeric values fail validation."""
        params = BoosterParams({key: value})
        with pytest.raises(ConfigurationError):
            params.validate()

    @pytest.mark.parametrize("key,value", [
        ('eta', -1),
        ('max_depth', -2),
        ('subsample', 0),
        ('colsample_bynode', 1.5),
        ('num_class', 0),
        ('maximize_evaluation_metrics', 'maybe'),
    ])
    def test_out_of_range(self, key, value):
        """Test that out-of-range values fail validation."""
        with pytest.raises(ConfigurationError):
            BoosterParams({key: value}).validate()

    def test_eval_metrics(self):
        """Test eval_metric parsing from strings and lists."""
        assert BoosterParams(eval_metric="rmse, mae").eval_metrics == ['rmse', 'mae']
        assert BoosterParams(eval_metric=['auc']).eval_metrics == ['auc']
        assert BoosterParams().eval_metrics == []

    def test_direction_flags(self):
        """Test parsing of the boolean direction flags."""
        assert BoosterParams().maximize_evaluation_metrics is None
        assert BoosterParams(maximize_evaluation_metrics="False").maximize_evaluation_metrics is False
        assert BoosterParams(disable_default_eval_metric=1).disable_default_eval_metric is True

    def test_copy_is_independent(self):
        """Test that a copy does not share state with the original."""
        params = BoosterParams(eta=0.1)
        clone = params.copy()
        clone['eta'] = 0.2
        assert params.eta == 0.1
        assert clone != params

    def test_environment_overrides_on_params(self, monkeypatch):
        """Test applying environment overrides to an existing parameter set."""
        monkeypatch.setenv('TREE_ENSEMBLE_ETA', '0.05')
        monkeypatch.setenv('TREE_ENSEMBLE_MAX_DEPTH', '3')
        params = BoosterParams(apply_environment_overrides(BoosterParams(eta=0.3).to_dict()))
        assert params.eta == 0.05
        assert params.max_depth == 3


class TestEnvironmentParsing:
    """Test environment value parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ('true', True),
        ('OFF', False),
        ('12', 12),
        ('0.25', 0.25),
        ('hist', 'hist'),
    ])
    def test_parse_env_value(self, raw, expected):
        """Test conversion of environment strings to typed values."""
        assert parse_env_value(raw) == expected

    def test_overrides_return_copy(self, monkeypatch):
        """Test that environment overrides leave the input untouched."""
        monkeypatch.setenv('TREE_ENSEMBLE_SEED', '9')
        original = {'seed': 1}
        overridden = apply_environment_overrides(original)
        assert overridden['seed'] == 9
        assert original['seed'] == 1


class TestParameterFiles:
    """Test loading and saving parameter files."""

    def test_yaml_round_trip(self, tmp_path):
        """Test saving and loading parameters as YAML."""
        params = BoosterParams({'objective': 'binary:logistic', 'eta': 0.1, 'eval_metric': ['auc', 'logloss']})
        path = tmp_path / "params.yaml"
        save_params(params, path)

        assert yaml.safe_load(path.read_text())['eta'] == 0.1
        assert load_params(path, allow_environment_override=False) == params

    def test_json_round_trip(self, tmp_path):
        """Test saving and loading parameters as JSON."""
        path = tmp_path / "nested" / "params.json"
        save_params({'max_depth': 4}, path)

        assert json.loads(path.read_text()) == {'max_depth': 4}
        assert load_params(path).max_depth == 4

    def test_section(self, tmp_path):
        """Test loading one section of a parameter file."""
        path = tmp_path / "experiment.yaml"
        path.write_text("name: churn\nparams:\n  objective: binary:logistic\n  max_depth: 3\n")

        params = load_params(path, section='params')
        assert params.objective == 'binary:logistic'
        with pytest.raises(ConfigurationError):
            load_params(path, section='missing')

    def test_environment_override(self, tmp_path, monkeypatch):
        """Test that environment variables override file values."""
        path = tmp_path / "params.yaml"
        path.write_text("max_depth: 3\n")
        monkeypatch.setenv('TREE_ENSEMBLE_MAX_DEPTH', '5')

        assert load_params(path).max_depth == 5
        assert load_params(path, allow_environment_override=False).max_depth == 3

    def test_validation_on_load(self, tmp_path):
        """Test that loaded parameters are validated."""
        path = tmp_path / "params.yaml"
        path.write_text("eta: -0.5\n")
        with pytest.raises(ConfigurationError):
            load_params(path)

    @pytest.mark.parametrize("content,error_code", [
        ("- a\n- b\n", "CONFIG_NOT_MAPPING"),
        ("key: [unclosed\n", "CONFIG_PARSE_FAILED"),
    ])
    def test_bad_files(self, tmp_path, content, error_code):
        """Test error codes for unparsable or non-mapping files."""
        path = tmp_path / "bad.yaml"
        path.write_text(content)
        with pytest.raises(ConfigurationError) as exc_info:
            load_yaml(path)
        assert exc_info.value.error_code == error_code

    def test_missing_file(self, tmp_path):
        """Test that a missing parameter file raises."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_yaml(tmp_path / "absent.yaml")
        assert exc_info.value.error_code == "CONFIG_NOT_FOUND"

    def test_empty_file(self, tmp_path):
        """Test that an empty file loads as no parameters."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(path) == {}
