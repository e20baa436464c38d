import random

from config import check_probability
from graph_store import edge_key
from utils import setup_logger

logger = setup_logger()


class FailureTracker:
    def __init__(self, node_probability=0.0, link_probability=0.0, rng=None, seed=None):
        """
        Tracks which routers and links are currently down.

        Flags are kept apart from the topology so that resetting liveness
        never touches the graph. Link flags are keyed by edge_key(u, v), so a
        lookup from either endpoint resolves to the same flag.

        Args:
            node_probability: Bernoulli parameter for router draws
            link_probability: Bernoulli parameter for link draws
            rng: randomness source exposing random() -> float in [0, 1)
            seed: seed for the default random.Random when rng is not given
        """
        self.node_probability = check_probability("node_probability", node_probability)
        self.link_probability = check_probability("link_probability", link_probability)
        self.rng = rng if rng is not None else random.Random(seed)
        self.node_down = {}
        self.link_down = {}

    def _draw(self, probability):
        return self.rng.random() < probability

    def track_vertex(self, vertex):
        """Samples the initial flag for a new router. Returns it."""
        if vertex not in self.node_down:
            self.node_down[vertex] = self._draw(self.node_probability)
        return self.node_down[vertex]

    def track_edge(self, u, v):
        """Samples the initial flag for a newly inserted link. Returns it."""
        key = edge_key(u, v)
        if key not in self.link_down:
            self.link_down[key] = self._draw(self.link_probability)
        return self.link_down[key]

    def forget_vertex(self, vertex):
        self.node_down.pop(vertex, None)

    def forget_edge(self, u, v):
        self.link_down.pop(edge_key(u, v), None)

    def is_vertex_down(self, vertex):
        return self.node_down.get(vertex, False)

    def is_edge_down(self, u, v):
        return self.link_down.get(edge_key(u, v), False)

    def set_vertex_down(self, vertex, down=True):
        """Overrides a tracked router's flag. Returns False for an untracked router."""
        if vertex not in self.node_down:
            logger.debug(f"Ignoring flag for untracked router {vertex}")
            return False
        self.node_down[vertex] = bool(down)
        return True

    def set_edge_down(self, u, v, down=True):
        key = edge_key(u, v)
        if key not in self.link_down:
            logger.debug(f"Ignoring flag for untracked link {u} - {v}")
            return False
        self.link_down[key] = bool(down)
        return True

    def resample(self):
        """
        One tick of churn. Every router, then every link, gets one draw; a
        successful draw flips the flag, so down entities can also recover.

        Returns:
            list of (kind, key, down) for each flag that flipped,
            kind being "vertex" or "edge"
        """
        flips = []
        for vertex in self.node_down:
            if self._draw(self.node_probability):
                self.node_down[vertex] = not self.node_down[vertex]
                flips.append(("vertex", vertex, self.node_down[vertex]))
        for key in self.link_down:
            if self._draw(self.link_probability):
                self.link_down[key] = not self.link_down[key]
                flips.append(("edge", key, self.link_down[key]))
        if flips:
            logger.debug(f"Resample flipped {len(flips)} flag(s)")
        return flips

    def reset(self):
        """Marks everything healthy. Probabilities are kept."""
        for vertex in self.node_down:
            self.node_down[vertex] = False
        for key in self.link_down:
            self.link_down[key] = False

    def set_probabilities(self, node_probability, link_probability):
        """
        Replaces the probabilities used by future draws. Both values are
        checked before either is applied; current flags are untouched.

        Raises:
            InvalidProbabilityError: a value is not a number in [0, 1]
        """
        node_p = check_probability("node_probability", node_probability)
        link_p = check_probability("link_probability", link_probability)
        self.node_probability = node_p
        self.link_probability = link_p

    def down_vertices(self):
        return [v for v, down in self.node_down.items() if down]

    def down_edges(self):
        return [key for key, down in self.link_down.items() if down]
