"""Shared fixtures for dsf tests."""

import numpy as np
import pytest

from dsf.dvector import DVector


class CountingSource:
    """Partition source that records how often each partition is computed."""

    def __init__(self, values, num_partitions):
        self.parts = np.array_split(np.asarray(values, dtype=np.float64), num_partitions)
        self.calls = [0] * num_partitions

    def __call__(self, i):
        self.calls[i] += 1
        return self.parts[i].copy()

    def dvector(self):
        return DVector([part.size for part in self.parts], self)


@pytest.fixture
def counting_source():
    return CountingSource


@pytest.fixture
def rng():
    return np.random.default_rng(203)
