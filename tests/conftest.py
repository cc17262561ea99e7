"""Shared datasets for the playback tests."""

import pytest

from mlplayback.datasets import (Dataset, make_linear_blobs, make_moons,
                                 make_regression_curve, make_tree_friendly)


@pytest.fixture
def four_points():
    """Two columns of two points: feature 0 alone decides the label."""
    return Dataset.from_samples([
        (0, 0, 0),
        (0, 1, 0),
        (1, 0, 1),
        (1, 1, 1),
    ])


@pytest.fixture
def empty_dataset():
    return Dataset.from_samples([])


@pytest.fixture
def tree_friendly():
    return make_tree_friendly(n_samples=80, seed=7)


@pytest.fixture
def moons():
    return make_moons(n_samples=80, seed=3)


@pytest.fixture
def blobs():
    return make_linear_blobs(n_samples=40, seed=11)


@pytest.fixture
def curve():
    return make_regression_curve(n_samples=40, seed=5)
