"""
Validated trainer configuration.

Every trainer takes a plain record of named options. Records are
pydantic models: unknown fields are rejected, ranges are checked, and
any failure surfaces as ConfigError BEFORE a single number is computed.
Numeric and boolean fields are strict: True is not a depth and "0.3"
is not a learning rate.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from .criteria import Criterion

# Tree depth beyond this is far outside the playback sizes.
MAX_TREE_DEPTH = 12


class ConfigError(ValueError):
    """Invalid trainer configuration."""

    def __init__(self, config_name, errors):
        self.config_name = config_name
        self.errors = errors
        fields = ', '.join(
            '.'.join(str(part) for part in err.get('loc', ())) or '<root>'
            for err in errors
        )
        details = '; '.join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or '<root>'}: {err.get('msg')}"
            for err in errors
        )
        self.fields = fields
        super().__init__(f"invalid {config_name} ({fields}): {details}")


class _TrainerConfig(BaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True, allow_inf_nan=False)


class DecisionTreeConfig(_TrainerConfig):
    max_depth: int = Field(5, ge=1, le=MAX_TREE_DEPTH, strict=True)
    min_samples_split: int = Field(2, ge=2, strict=True)
    criterion: Criterion = Criterion.GINI


class RandomForestConfig(_TrainerConfig):
    n_trees: int = Field(10, ge=1, le=200, strict=True)
    max_depth: int = Field(5, ge=1, le=MAX_TREE_DEPTH, strict=True)
    min_samples_split: int = Field(2, ge=2, strict=True)
    criterion: Criterion = Criterion.GINI
    max_features: Optional[StrictInt] = Field(None, ge=1)
    bootstrap: bool = Field(True, strict=True)
    seed: int = Field(42, strict=True)


class GradientBoostingConfig(_TrainerConfig):
    n_estimators: int = Field(20, ge=1, le=500, strict=True)
    # 0 is a legal shrinkage: the ensemble never moves off the baseline
    learning_rate: float = Field(0.1, ge=0.0, le=1.0, strict=True)
    max_depth: int = Field(2, ge=1, le=3, strict=True)
    min_samples_split: int = Field(2, ge=2, strict=True)
    loss: Literal['squared_error', 'log_loss'] = 'squared_error'


class PerceptronConfig(_TrainerConfig):
    learning_rate: float = Field(0.1, gt=0.0, le=1.0, strict=True)
    epochs: int = Field(50, ge=1, le=10000, strict=True)
    activation: Literal['step', 'sigmoid'] = 'step'
    init: Literal['random', 'zeros'] = 'random'
    seed: int = Field(42, strict=True)


def parse_config(config_cls, config=None):
    """
    Coerce `config` (None, a mapping, or an instance) into `config_cls`.

    Raises ConfigError naming every offending field.
    """
    if isinstance(config, config_cls):
        return config
    if config is None:
        config = {}
    elif isinstance(config, BaseModel):
        raise ConfigError(config_cls.__name__, [{
            'loc': (), 'msg': f'expected {config_cls.__name__}, got {type(config).__name__}'}])
    elif not hasattr(config, 'keys'):
        raise ConfigError(config_cls.__name__, [{
            'loc': (), 'msg': f'expected a mapping, got {type(config).__name__}'}])
    try:
        return config_cls.model_validate(dict(config))
    except ValidationError as e:
        raise ConfigError(config_cls.__name__, e.errors()) from e
