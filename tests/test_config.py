"""Tests for trainer configuration validation."""

import pytest

from mlplayback.config import (ConfigError, DecisionTreeConfig, GradientBoostingConfig,
                               PerceptronConfig, RandomForestConfig, parse_config)
from mlplayback.criteria import Criterion
from mlplayback.boosting import train_gradient_boosting
from mlplayback.forest import train_random_forest
from mlplayback.linear import train_perceptron
from mlplayback.tree import train_decision_tree


class TestParseConfig:

    def test_none_gives_defaults(self):
        config = parse_config(DecisionTreeConfig)
        assert config.max_depth == 5
        assert config.min_samples_split == 2
        assert config.criterion is Criterion.GINI

    def test_mapping_is_validated(self):
        config = parse_config(RandomForestConfig, {'n_trees': 3, 'criterion': 'entropy'})
        assert config.n_trees == 3
        assert config.criterion is Criterion.ENTROPY

    def test_instance_passes_through(self):
        config = PerceptronConfig(epochs=7)
        assert parse_config(PerceptronConfig, config) is config

    def test_unknown_field_rejected(self):
        with pytest.raises(ConfigError) as exc:
            parse_config(DecisionTreeConfig, {'max_dpeth': 3})
        assert 'max_dpeth' in exc.value.fields

    def test_wrong_model_type_rejected(self):
        with pytest.raises(ConfigError):
            parse_config(RandomForestConfig, DecisionTreeConfig())

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigError):
            parse_config(DecisionTreeConfig, 5)

    def test_configs_are_frozen(self):
        config = DecisionTreeConfig()
        with pytest.raises(Exception):
            config.max_depth = 9

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_config(DecisionTreeConfig, {'max_depth': 0})


class TestRanges:
    """Out-of-range values fail before any training."""

    @pytest.mark.parametrize("trainer,config", [
        (train_decision_tree, {'max_depth': 0}),
        (train_decision_tree, {'max_depth': -2}),
        (train_decision_tree, {'min_samples_split': 1}),
        (train_decision_tree, {'criterion': 'mae'}),
        (train_random_forest, {'n_trees': 0}),
        (train_random_forest, {'max_features': 0}),
        (train_gradient_boosting, {'n_estimators': 0}),
        (train_gradient_boosting, {'learning_rate': -0.1}),
        (train_gradient_boosting, {'learning_rate': 1.5}),
        (train_gradient_boosting, {'max_depth': 4}),
        (train_gradient_boosting, {'learning_rate': float('nan')}),
        (train_perceptron, {'learning_rate': 0.0}),
        (train_perceptron, {'epochs': 0}),
        (train_perceptron, {'activation': 'relu'}),
    ])
    def test_rejected(self, trainer, config, four_points):
        with pytest.raises(ConfigError):
            trainer(four_points, config)

    def test_zero_shrinkage_is_legal_for_boosting(self):
        assert GradientBoostingConfig(learning_rate=0.0).learning_rate == 0.0

    def test_seed_may_be_negative(self):
        assert RandomForestConfig(seed=-5).seed == -5


class TestStrictTypes:
    """Wrong-typed values are rejected, never coerced."""

    @pytest.mark.parametrize("trainer,config", [
        (train_decision_tree, {'max_depth': True}),
        (train_decision_tree, {'max_depth': '3'}),
        (train_decision_tree, {'max_depth': 2.0}),
        (train_random_forest, {'n_trees': '5'}),
        (train_random_forest, {'bootstrap': 'yes'}),
        (train_random_forest, {'bootstrap': 1}),
        (train_random_forest, {'max_features': True}),
        (train_gradient_boosting, {'learning_rate': '0.3'}),
        (train_gradient_boosting, {'n_estimators': 3.0}),
        (train_perceptron, {'learning_rate': '0.1'}),
        (train_perceptron, {'seed': '7'}),
    ])
    def test_rejected(self, trainer, config, four_points):
        with pytest.raises(ConfigError):
            trainer(four_points, config)

    def test_int_is_a_valid_learning_rate(self):
        assert GradientBoostingConfig(learning_rate=1).learning_rate == 1.0
