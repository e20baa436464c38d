import math
from dataclasses import dataclass
from typing import Optional, Tuple

import networkx as nx

from utils import setup_logger

logger = setup_logger()

INF = math.inf


@dataclass(frozen=True)
class PathResult:
    source: str
    sink: str
    path: Optional[Tuple[str, ...]] = None
    cost: Optional[int] = None

    @property
    def found(self):
        return self.path is not None

    @property
    def hops(self):
        return len(self.path) - 1 if self.path else 0

    def to_dict(self):
        return {
            "source": self.source,
            "sink": self.sink,
            "path": list(self.path) if self.path is not None else None,
            "cost": self.cost,
        }


def no_path(source, sink):
    return PathResult(source, sink)


def path_cost(store, path):
    """Sum of link costs along path, or None if a hop is not a link."""
    total = 0
    for u, v in zip(path[:-1], path[1:]):
        cost = store.cost(u, v)
        if cost is None:
            return None
        total += cost
    return total


class RoutingAlgorithm:
    def __init__(self, graph):
        self.graph = graph

    def find_path(self, source, target):
        raise NotImplementedError("Subclasses must implement find_path")


class FailureAwareRouting(RoutingAlgorithm):
    """
    Dijkstra from source to target over a GraphStore, skipping routers and
    links the FailureTracker reports as down.

    Uses a linear scan for the closest unvisited router, O(V^2 + E), which
    is plenty for meshes of a few dozen routers. Scanning in creation order
    with a strict comparison means the earliest-created router wins ties, so
    results are reproducible.
    """

    def __init__(self, graph, failures):
        super().__init__(graph)
        self.failures = failures

    def _blocked(self, current, neighbor):
        return (self.failures.is_vertex_down(neighbor)
                or self.failures.is_edge_down(current, neighbor))

    def find_path(self, source, target):
        if source not in self.graph or target not in self.graph:
            return no_path(source, target)
        if source == target:
            return PathResult(source, target, (source,), 0)

        vertices = self.graph.vertices()
        distances = {v: INF for v in vertices}
        previous = {v: None for v in vertices}
        distances[source] = 0
        unvisited = list(vertices)
        logger.debug(f"Finding path from {source} to {target}")

        while unvisited:
            current = unvisited[0]
            for vertex in unvisited[1:]:
                if distances[vertex] < distances[current]:
                    current = vertex

            if distances[current] == INF:
                logger.debug("No more accessible routers")
                break

            unvisited.remove(current)
            logger.debug(f"Visiting {current} at distance {distances[current]}")
            if current == target:
                break

            for neighbor, cost in self.graph.neighbors(current):
                if self._blocked(current, neighbor):
                    logger.debug(f"Skipping neighbor {neighbor} due to failure")
                    continue
                candidate = distances[current] + cost
                if candidate < distances[neighbor]:
                    distances[neighbor] = candidate
                    previous[neighbor] = current

        if previous[target] is None:
            logger.debug(f"No path from {source} to {target}")
            return no_path(source, target)

        path = [target]
        while path[-1] != source:
            hop = previous[path[-1]]
            if hop is None:
                return no_path(source, target)
            path.append(hop)
        path.reverse()
        return PathResult(source, target, tuple(path), distances[target])


class ShortestPathRouting(RoutingAlgorithm):
    """
    networkx Dijkstra over a failure-filtered view of the same graph.
    Agrees with FailureAwareRouting on cost; among equal-cost paths it may
    pick a different one.
    """

    def __init__(self, graph, failures):
        super().__init__(graph)
        self.failures = failures

    def live_view(self, source=None):
        # The source's own flag is not consulted when routing from it.
        return nx.subgraph_view(
            self.graph.graph,
            filter_node=lambda n: n == source or not self.failures.is_vertex_down(n),
            filter_edge=lambda u, v: not self.failures.is_edge_down(u, v),
        )

    def find_path(self, source, target):
        if source not in self.graph or target not in self.graph:
            return no_path(source, target)
        if source == target:
            return PathResult(source, target, (source,), 0)
        view = self.live_view(source)
        try:
            path = nx.shortest_path(view, source=source, target=target, weight="weight")
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return no_path(source, target)
        return PathResult(source, target, tuple(path), path_cost(self.graph, path))


def shortest_path(graph, failures, source, target):
    return FailureAwareRouting(graph, failures).find_path(source, target)
