from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from routing import PathResult


@dataclass(frozen=True)
class VertexState:
    id: str
    down: bool


@dataclass(frozen=True)
class EdgeState:
    u: str
    v: str
    cost: int
    down: bool

    @property
    def key(self):
        return (self.u, self.v)


@dataclass(frozen=True)
class Snapshot:
    """
    Read-only view of the mesh after a tick or reset: router and link
    liveness plus the current route. Holds copies, never engine state.
    """
    tick: int
    time: float
    state: str
    vertices: Tuple[VertexState, ...]
    edges: Tuple[EdgeState, ...]
    path: PathResult
    node_failure_probability: float
    link_failure_probability: float

    def down_vertices(self):
        return [v.id for v in self.vertices if v.down]

    def down_edges(self):
        return [e.key for e in self.edges if e.down]

    def vertex(self, vertex_id):
        for v in self.vertices:
            if v.id == vertex_id:
                return v
        return None

    def edge(self, u, v):
        wanted = {u, v}
        for e in self.edges:
            if {e.u, e.v} == wanted:
                return e
        return None

    def to_dict(self):
        return {
            "tick": self.tick,
            "time": self.time,
            "state": self.state,
            "vertices": [{"id": v.id, "down": v.down} for v in self.vertices],
            "edges": [{"u": e.u, "v": e.v, "cost": e.cost, "down": e.down} for e in self.edges],
            "path": self.path.to_dict(),
            "node_failure_probability": self.node_failure_probability,
            "link_failure_probability": self.link_failure_probability,
        }


@dataclass(frozen=True)
class SimulationEvent:
    kind: str
    tick: int
    data: Dict[str, Any] = field(default_factory=dict)
    time: Optional[float] = None


class SimulationObserver:
    """
    Collaborator notified by NetworkSimulation. Override either hook;
    duck-typed objects with the same method names work too.
    """

    def on_snapshot(self, snapshot):
        pass

    def on_event(self, event):
        pass
