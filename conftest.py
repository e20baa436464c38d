from collections import deque

import pytest

from config import SimulationConfig


class ScriptedRandom:
    """Returns queued values from random(), then `default` once the queue is empty."""

    def __init__(self, values=(), default=0.99):
        self.values = deque(values)
        self.default = default
        self.calls = 0

    def push(self, *values):
        self.values.extend(values)

    def random(self):
        self.calls += 1
        if self.values:
            return self.values.popleft()
        return self.default


@pytest.fixture
def scripted_rng():
    return ScriptedRandom()


@pytest.fixture
def triangle_config():
    # a-b 3, a-c 2, b-c 4
    return SimulationConfig(
        routers=["a", "b", "c"],
        links=[("a", "b", 3), ("a", "c", 2), ("b", "c", 4)],
        node_failure_probability=0.0,
        link_failure_probability=0.0,
        tick_interval=5,
        source="a",
        sink="c",
    )
