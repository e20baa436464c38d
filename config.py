"""
Configuration for the mesh routing simulation.
"""

import math
from dataclasses import dataclass, field, fields
from typing import Optional

from errors import ConfigurationError, InvalidProbabilityError

DEFAULT_ROUTERS = [f"Router-{i}" for i in range(1, 21)]

# (from, to, cost)
DEFAULT_LINKS = [
    ("Router-1", "Router-2", 1), ("Router-1", "Router-3", 2),
    ("Router-1", "Router-4", 2), ("Router-2", "Router-4", 3),
    ("Router-2", "Router-5", 2), ("Router-3", "Router-6", 3),
    ("Router-4", "Router-5", 4), ("Router-4", "Router-7", 2),
    ("Router-5", "Router-8", 1), ("Router-6", "Router-8", 2),
    ("Router-7", "Router-9", 1), ("Router-8", "Router-10", 3),
    ("Router-10", "Router-11", 1), ("Router-10", "Router-12", 2),
    ("Router-11", "Router-13", 3), ("Router-12", "Router-14", 4),
    ("Router-13", "Router-15", 1), ("Router-14", "Router-16", 2),
    ("Router-15", "Router-17", 3), ("Router-16", "Router-18", 2),
    ("Router-17", "Router-19", 1), ("Router-18", "Router-20", 4),
    ("Router-19", "Router-20", 2),
]

SIM_CONFIG = {
    "node_failure_probability": 0.1,   # chance a router flips up/down per tick
    "link_failure_probability": 0.05,  # chance a link flips up/down per tick
    "tick_interval": 5,                # simulation time units between ticks
    "source": "Router-1",
    "sink": "Router-20",
    "seed": None,
}


def check_probability(name, value):
    """Raises InvalidProbabilityError unless value is a real number in [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidProbabilityError(f"{name} must be a number, got {value!r}")
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise InvalidProbabilityError(f"{name} must be within [0, 1], got {value!r}")
    return float(value)


@dataclass
class SimulationConfig:
    routers: list = field(default_factory=lambda: list(DEFAULT_ROUTERS))
    links: list = field(default_factory=lambda: list(DEFAULT_LINKS))
    node_failure_probability: float = SIM_CONFIG["node_failure_probability"]
    link_failure_probability: float = SIM_CONFIG["link_failure_probability"]
    tick_interval: float = SIM_CONFIG["tick_interval"]
    source: str = SIM_CONFIG["source"]
    sink: str = SIM_CONFIG["sink"]
    seed: Optional[int] = SIM_CONFIG["seed"]

    def router_ids(self):
        """
        Routers in creation order: the explicit router list first, then any
        router that only appears in the link list, in order of appearance.
        """
        ordered = list(dict.fromkeys(self.routers))
        seen = set(ordered)
        for u, v, _ in self.links:
            for router in (u, v):
                if router not in seen:
                    seen.add(router)
                    ordered.append(router)
        return ordered

    def validate(self):
        """
        Checks the values that make the whole simulation unusable when wrong.
        Individual bad links are not checked here; the engine reports them as
        topology diagnostics when it builds the graph.
        """
        check_probability("node_failure_probability", self.node_failure_probability)
        check_probability("link_failure_probability", self.link_failure_probability)
        if isinstance(self.tick_interval, bool) or not isinstance(self.tick_interval, (int, float)) \
                or not self.tick_interval > 0:
            raise ConfigurationError(f"tick_interval must be positive, got {self.tick_interval!r}")
        for link in self.links:
            if len(link) != 3:
                raise ConfigurationError(f"links must be (from, to, cost) triples, got {link!r}")
        routers = set(self.router_ids())
        for role in ("source", "sink"):
            endpoint = getattr(self, role)
            if endpoint not in routers:
                raise ConfigurationError(f"{role} {endpoint!r} is not a router in the topology")
        return self

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        values = dict(data)
        if "links" in values:
            values["links"] = [tuple(link) for link in values["links"]]
        if "routers" in values:
            values["routers"] = list(values["routers"])
        return cls(**values)

    def to_dict(self):
        return {
            "routers": list(self.routers),
            "links": [list(link) for link in self.links],
            "node_failure_probability": self.node_failure_probability,
            "link_failure_probability": self.link_failure_probability,
            "tick_interval": self.tick_interval,
            "source": self.source,
            "sink": self.sink,
            "seed": self.seed,
        }
