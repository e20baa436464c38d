import numbers

import networkx as nx

from errors import DuplicateEdgeError, InvalidCostError, SelfLoopError, UnknownVertexError
from utils import setup_logger

logger = setup_logger()


def edge_key(u, v):
    """Direction-independent key for the link between u and v."""
    return (u, v) if u <= v else (v, u)


class GraphStore:
    """
    Weighted undirected router mesh.

    Backed by a networkx.Graph so both endpoints of a link always see the
    same partner and the same cost, and a second link between the same pair
    cannot exist. Link cost is stored in the 'weight' attribute.
    Vertex and neighbor order follow insertion order.
    """

    def __init__(self):
        self.graph = nx.Graph()

    @classmethod
    def from_links(cls, links, vertices=None):
        """
        Builds a store from (from, to, cost) triples. Invalid links are
        skipped with a warning; use NetworkSimulation to get diagnostics.
        """
        store = cls()
        for vertex in vertices or []:
            store.add_vertex(vertex)
        for u, v, cost in links:
            store.add_vertex(u)
            store.add_vertex(v)
            try:
                store.add_edge(u, v, cost)
            except (DuplicateEdgeError, SelfLoopError, InvalidCostError) as e:
                logger.warning(f"Skipping link {u}-{v}: {e}")
        return store

    def add_vertex(self, vertex):
        """Adds a router. Returns False if it already existed."""
        if vertex in self.graph:
            return False
        self.graph.add_node(vertex)
        return True

    def add_edge(self, u, v, cost):
        """
        Adds an undirected link of the given cost.

        Raises:
            UnknownVertexError: either endpoint is not in the graph
            SelfLoopError: u and v are the same router
            DuplicateEdgeError: u and v are already linked (in either direction)
            InvalidCostError: cost is not a positive integer
        """
        for vertex in (u, v):
            if vertex not in self.graph:
                raise UnknownVertexError(f"Router {vertex!r} does not exist")
        if u == v:
            raise SelfLoopError(f"Self-loop on {u!r} rejected")
        if self.graph.has_edge(u, v):
            raise DuplicateEdgeError(f"Link between {u!r} and {v!r} already exists")
        if isinstance(cost, bool) or not isinstance(cost, numbers.Integral) or cost <= 0:
            raise InvalidCostError(f"Link cost must be a positive integer, got {cost!r}")
        self.graph.add_edge(u, v, weight=int(cost))

    def remove_vertex(self, vertex):
        """Removes a router and every link touching it."""
        if vertex not in self.graph:
            return False
        self.graph.remove_node(vertex)
        return True

    def remove_edge(self, u, v):
        if not self.graph.has_edge(u, v):
            return False
        self.graph.remove_edge(u, v)
        return True

    def neighbors(self, vertex):
        """List of (neighbor, cost) pairs; empty for an unknown router."""
        if vertex not in self.graph:
            return []
        return [(n, data["weight"]) for n, data in self.graph.adj[vertex].items()]

    def vertices(self):
        return list(self.graph.nodes)

    def edges(self):
        """Links as canonical (u, v, cost) triples."""
        return [edge_key(u, v) + (cost,) for u, v, cost in self.graph.edges(data="weight")]

    def incident_edges(self, vertex):
        return [edge_key(vertex, n) for n, _ in self.neighbors(vertex)]

    def has_vertex(self, vertex):
        return vertex in self.graph

    def has_edge(self, u, v):
        return self.graph.has_edge(u, v)

    def cost(self, u, v):
        if not self.graph.has_edge(u, v):
            return None
        return self.graph[u][v]["weight"]

    def __contains__(self, vertex):
        return vertex in self.graph

    def __len__(self):
        return self.graph.number_of_nodes()

    def dfs(self, start):
        """Depth-first visiting order from start, ignoring failures."""
        if start not in self.graph:
            return []
        # Explicit stack: the last neighbor pushed is visited first (a, c, b
        # on the triangle), which nx.dfs_preorder_nodes does not reproduce.
        visited = []
        seen = set()
        stack = [start]
        while stack:
            vertex = stack.pop()
            if vertex in seen:
                continue
            seen.add(vertex)
            visited.append(vertex)
            for neighbor, _ in self.neighbors(vertex):
                if neighbor not in seen:
                    stack.append(neighbor)
        return visited

    def bfs(self, start):
        """Breadth-first visiting order from start, ignoring failures."""
        if start not in self.graph:
            return []
        return [start] + [v for _, v in nx.bfs_edges(self.graph, start)]

    def show(self):
        """Adjacency listing, one router per line."""
        lines = []
        for vertex in self.graph.nodes:
            links = ", ".join(f"{n} (cost: {c})" for n, c in self.neighbors(vertex))
            lines.append(f"{vertex} -> {links}")
        return "\n".join(lines)
