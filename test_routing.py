import logging
import random

import networkx as nx
import pytest

from failure_model import FailureTracker
from graph_store import GraphStore
from routing import FailureAwareRouting, PathResult, ShortestPathRouting, path_cost, shortest_path


def build(links, vertices=None):
    store = GraphStore.from_links(links, vertices=vertices)
    tracker = FailureTracker(0.0, 0.0)
    for v in store.vertices():
        tracker.track_vertex(v)
    for u, v, _ in store.edges():
        tracker.track_edge(u, v)
    return store, tracker


TRIANGLE = [("a", "b", 3), ("a", "c", 2), ("b", "c", 4)]


def test_triangle_shortest_paths():
    store, tracker = build(TRIANGLE)
    to_c = shortest_path(store, tracker, "a", "c")
    assert to_c.path == ("a", "c")
    assert to_c.cost == 2
    to_b = shortest_path(store, tracker, "a", "b")
    assert to_b.path == ("a", "b")
    assert to_b.cost == 3


def test_failed_link_forces_detour():
    store, tracker = build(TRIANGLE)
    tracker.set_edge_down("a", "c")
    result = shortest_path(store, tracker, "a", "c")
    assert result.path == ("a", "b", "c")
    assert result.cost == 7


def test_link_flag_applies_whichever_way_it_was_set():
    store, tracker = build(TRIANGLE)
    tracker.set_edge_down("c", "a")
    assert shortest_path(store, tracker, "a", "c").path == ("a", "b", "c")
    assert shortest_path(store, tracker, "c", "a").path == ("c", "b", "a")


def test_failed_router_is_avoided():
    store, tracker = build([("a", "b", 1), ("b", "c", 1), ("a", "c", 5)])
    assert shortest_path(store, tracker, "a", "c").path == ("a", "b", "c")
    tracker.set_vertex_down("b")
    result = shortest_path(store, tracker, "a", "c")
    assert result.path == ("a", "c")
    assert result.cost == 5
    assert not shortest_path(store, tracker, "a", "b").found


def test_failed_sink_means_no_path():
    store, tracker = build(TRIANGLE)
    tracker.set_vertex_down("c")
    result = shortest_path(store, tracker, "a", "c")
    assert result == PathResult("a", "c")
    assert result.path is None and result.cost is None


def test_source_flag_is_not_consulted():
    store, tracker = build(TRIANGLE)
    tracker.set_vertex_down("a")
    assert shortest_path(store, tracker, "a", "c").path == ("a", "c")


def test_disconnected_sink():
    store, tracker = build([("a", "b", 1)], vertices=["a", "b", "z"])
    assert not shortest_path(store, tracker, "a", "z").found


def test_unknown_endpoints():
    store, tracker = build(TRIANGLE)
    assert not shortest_path(store, tracker, "a", "zz").found
    assert not shortest_path(store, tracker, "zz", "a").found


def test_source_equals_sink():
    store, tracker = build(TRIANGLE)
    result = shortest_path(store, tracker, "b", "b")
    assert result.path == ("b",)
    assert result.cost == 0
    assert result.hops == 0


def test_ties_go_to_earliest_created_router():
    square = [("a", "b", 1), ("a", "c", 1), ("b", "d", 1), ("c", "d", 1)]
    store, tracker = build(square, vertices=["a", "b", "c", "d"])
    assert shortest_path(store, tracker, "a", "d").path == ("a", "b", "d")

    store, tracker = build(square, vertices=["a", "c", "b", "d"])
    assert shortest_path(store, tracker, "a", "d").path == ("a", "c", "d")


def test_repeated_queries_are_stable():
    store, tracker = build(TRIANGLE)
    engine = FailureAwareRouting(store, tracker)
    results = {engine.find_path("a", "c") for _ in range(5)}
    assert len(results) == 1


def brute_force_cost(store, tracker, source, sink):
    best = None
    for path in nx.all_simple_paths(store.graph, source, sink):
        if any(tracker.is_vertex_down(v) for v in path[1:]):
            continue
        if any(tracker.is_edge_down(u, v) for u, v in zip(path, path[1:])):
            continue
        cost = path_cost(store, path)
        if best is None or cost < best:
            best = cost
    return best


def random_mesh(seed, max_vertices=9):
    rng = random.Random(seed)
    n = rng.randint(2, max_vertices)
    names = [f"r{i}" for i in range(n)]
    links = []
    for i in range(n):
        for j in range(i + 1, n):
            if rng.random() < 0.4:
                links.append((names[i], names[j], rng.randint(1, 9)))
    store, tracker = build(links, vertices=names)
    for v in names[1:]:
        tracker.set_vertex_down(v, rng.random() < 0.15)
    for u, v, _ in store.edges():
        tracker.set_edge_down(u, v, rng.random() < 0.15)
    return store, tracker, names


@pytest.mark.parametrize("seed", range(30))
def test_matches_brute_force(seed):
    store, tracker, names = random_mesh(seed)
    source, sink = names[0], names[-1]
    result = shortest_path(store, tracker, source, sink)
    expected = brute_force_cost(store, tracker, source, sink)
    assert result.cost == expected
    if result.found:
        assert result.path[0] == source and result.path[-1] == sink
        assert path_cost(store, result.path) == result.cost
        assert not any(tracker.is_vertex_down(v) for v in result.path[1:])


@pytest.mark.parametrize("seed", range(10))
def test_networkx_reference_agrees_on_cost(seed):
    store, tracker, names = random_mesh(seed + 100)
    ours = FailureAwareRouting(store, tracker).find_path(names[0], names[-1])
    reference = ShortestPathRouting(store, tracker).find_path(names[0], names[-1])
    assert ours.cost == reference.cost


def test_path_cost_rejects_non_links():
    store, _ = build(TRIANGLE)
    assert path_cost(store, ["a", "b", "c"]) == 7
    assert path_cost(store, ["a", "zz"]) is None


def test_path_result_to_dict():
    result = PathResult("a", "c", ("a", "c"), 2)
    assert result.to_dict() == {"source": "a", "sink": "c", "path": ["a", "c"], "cost": 2}
    assert PathResult("a", "c").to_dict()["path"] is None


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@pytest.fixture
def route_trace():
    logger = logging.getLogger("NetworkSim")
    handler = ListHandler()
    level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler.messages
    logger.removeHandler(handler)
    logger.setLevel(level)


def test_route_decisions_are_traced(route_trace):
    store, tracker = build(TRIANGLE)
    tracker.set_vertex_down("b")
    tracker.set_edge_down("a", "c")
    assert not shortest_path(store, tracker, "a", "c").found
    assert "Visiting a at distance 0" in route_trace
    assert "Skipping neighbor b due to failure" in route_trace
    assert "Skipping neighbor c due to failure" in route_trace
    assert "No more accessible routers" in route_trace
