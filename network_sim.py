import simpy
from enum import Enum

from config import SimulationConfig
from errors import (
    ConfigurationError,
    EndpointInUseError,
    MissingEdgeError,
    TopologyError,
    UnknownEndpointError,
    UnknownVertexError,
)
from failure_model import FailureTracker
from graph_store import GraphStore, edge_key
from routing import FailureAwareRouting
from snapshot import EdgeState, SimulationEvent, Snapshot, VertexState
from utils import setup_logger

logger = setup_logger()


class SimulationState(Enum):
    RUNNING = "running"
    PAUSED = "paused"


class NetworkSimulation:
    def __init__(self, env=None, config=None, rng=None, observers=None):
        """
        Mesh of routers with random outages, re-routing source -> sink on
        every tick of the simulation clock.

        Args:
            env: simpy.Environment driving the clock (a new one if omitted)
            config: SimulationConfig; defaults to the 20-router mesh
            rng: randomness source for failure draws (random() -> [0, 1))
            observers: collaborators with on_snapshot/on_event hooks

        Raises:
            ConfigurationError: invalid probabilities, tick interval or
                source/sink that is not part of the topology
        """
        self.env = env if env is not None else simpy.Environment()
        self.config = (config if config is not None else SimulationConfig()).validate()
        self.observers = list(observers or [])

        self.graph = GraphStore()
        self.failures = FailureTracker(
            self.config.node_failure_probability,
            self.config.link_failure_probability,
            rng=rng,
            seed=self.config.seed,
        )
        self.routing = FailureAwareRouting(self.graph, self.failures)

        self.source = self.config.source
        self.sink = self.config.sink
        self.tick_interval = self.config.tick_interval
        self.state = SimulationState.RUNNING
        self.tick_count = 0    # ticks that did work
        self.clock_ticks = 0   # ticks fired by the clock, paused or not
        self.last_snapshot = None
        self._process = None

        self.create_topology()

    # ---------- Topology ----------

    def create_topology(self):
        """Seeds routers then links from the configuration."""
        for router in self.config.router_ids():
            self.add_router(router)
        for u, v, cost in self.config.links:
            self.add_link(u, v, cost)
        logger.info(f"Topology created with {len(self.graph)} routers and "
                    f"{len(self.graph.edges())} links")

    def add_router(self, router):
        """Adds a router and samples its initial state. No-op if present."""
        if not self.graph.add_vertex(router):
            return False
        down = self.failures.track_vertex(router)
        self._emit("vertex_added", vertex=router, down=down)
        return True

    def add_link(self, u, v, cost):
        """Adds a link and samples its initial state. Returns False if rejected."""
        try:
            self.graph.add_edge(u, v, cost)
        except TopologyError as e:
            self._topology_error(e, u=u, v=v, cost=cost)
            return False
        down = self.failures.track_edge(u, v)
        self._emit("edge_added", u=u, v=v, cost=cost, down=down)
        return True

    def remove_router(self, router):
        """Removes a router with its links. The source and sink cannot be removed."""
        if router not in self.graph:
            self._topology_error(UnknownVertexError(f"Router {router!r} does not exist"), vertex=router)
            return False
        if router in (self.source, self.sink):
            self._topology_error(EndpointInUseError(f"Router {router!r} is the current source or sink"),
                                 vertex=router)
            return False
        for u, v in self.graph.incident_edges(router):
            self.failures.forget_edge(u, v)
            self._emit("edge_removed", u=u, v=v)
        self.graph.remove_vertex(router)
        self.failures.forget_vertex(router)
        self._emit("vertex_removed", vertex=router)
        return True

    def remove_link(self, u, v):
        if not self.graph.remove_edge(u, v):
            self._topology_error(MissingEdgeError(f"No link between {u!r} and {v!r}"), u=u, v=v)
            return False
        self.failures.forget_edge(u, v)
        self._emit("edge_removed", u=u, v=v)
        return True

    def set_router_down(self, router, down=True):
        """
        Forces a router down (or back up) outside the random draws.
        Returns False if the router is unknown or already in that state.
        """
        if router not in self.graph:
            self._topology_error(UnknownVertexError(f"Router {router!r} does not exist"), vertex=router)
            return False
        if self.failures.is_vertex_down(router) == down:
            return False
        self.failures.set_vertex_down(router, down)
        self._emit("vertex_toggled", vertex=router, down=down)
        return True

    def set_link_down(self, u, v, down=True):
        if not self.graph.has_edge(u, v):
            self._topology_error(MissingEdgeError(f"No link between {u!r} and {v!r}"), u=u, v=v)
            return False
        if self.failures.is_edge_down(u, v) == down:
            return False
        self.failures.set_edge_down(u, v, down)
        u, v = edge_key(u, v)
        self._emit("edge_toggled", u=u, v=v, down=down)
        return True

    # ---------- Commands ----------

    def pause(self):
        if self.state is SimulationState.PAUSED:
            return False
        self.state = SimulationState.PAUSED
        self._emit("paused")
        return True

    def resume(self):
        if self.state is SimulationState.RUNNING:
            return False
        self.state = SimulationState.RUNNING
        self._emit("resumed")
        return True

    @property
    def is_paused(self):
        return self.state is SimulationState.PAUSED

    def reset(self):
        """
        Marks every router and link healthy and re-routes immediately,
        without waiting for the next tick. Allowed while paused.
        """
        self.failures.reset()
        self._emit("reset")
        return self._recompute_and_publish()

    def set_probabilities(self, node_probability, link_probability):
        """Changes the per-tick flip probabilities. Returns False if rejected."""
        try:
            self.failures.set_probabilities(node_probability, link_probability)
        except ConfigurationError as e:
            self._configuration_error(e, node_probability=node_probability,
                                      link_probability=link_probability)
            return False
        self._emit("probabilities_changed",
                   node_probability=self.failures.node_probability,
                   link_probability=self.failures.link_probability)
        return True

    def set_endpoints(self, source, sink):
        for role, router in (("source", source), ("sink", sink)):
            if router not in self.graph:
                error = UnknownEndpointError(f"{role} {router!r} is not a router in the topology")
                self._configuration_error(error, source=source, sink=sink)
                return False
        self.source, self.sink = source, sink
        self._emit("endpoints_changed", source=source, sink=sink)
        return True

    def set_tick_interval(self, interval):
        """Takes effect from the next scheduled tick."""
        if isinstance(interval, bool) or not isinstance(interval, (int, float)) or not interval > 0:
            error = ConfigurationError(f"tick_interval must be positive, got {interval!r}")
            self._configuration_error(error, tick_interval=interval)
            return False
        self.tick_interval = interval
        return True

    # ---------- Clock ----------

    def tick(self):
        """
        One resample-and-recompute cycle. Returns the new snapshot, or None
        while paused (paused ticks change nothing and emit nothing).
        """
        if self.is_paused:
            logger.debug(f"Tick skipped at t={self.env.now} (paused)")
            return None
        flips = self.failures.resample()
        self.tick_count += 1
        for kind, key, down in flips:
            if kind == "vertex":
                self._emit("vertex_toggled", vertex=key, down=down)
            else:
                self._emit("edge_toggled", u=key[0], v=key[1], down=down)
        return self._recompute_and_publish()

    def process(self):
        """SimPy process: one tick every tick_interval time units."""
        while True:
            yield self.env.timeout(self.tick_interval)
            self.clock_ticks += 1
            self.tick()

    def start(self):
        if self._process is None:
            self._process = self.env.process(self.process())
        return self._process

    def run(self, until=None):
        """
        Runs the clock up to and including time `until`, so a tick scheduled
        exactly at `until` fires. Runs forever when `until` is None.
        """
        self.start()
        if until is None:
            self.env.run()
            return
        while self.env.peek() <= until:
            self.env.step()

    def advance(self, ticks=1):
        """Steps the environment until the clock has fired `ticks` more times."""
        self.start()
        target = self.clock_ticks + ticks
        while self.clock_ticks < target:
            self.env.step()
        return self.last_snapshot

    # ---------- Routing & snapshots ----------

    def current_path(self):
        return self.routing.find_path(self.source, self.sink)

    def snapshot(self, path=None):
        """Builds a detached snapshot of the current state."""
        if path is None:
            path = self.current_path()
        vertices = tuple(VertexState(v, self.failures.is_vertex_down(v)) for v in self.graph.vertices())
        edges = tuple(EdgeState(u, v, cost, self.failures.is_edge_down(u, v))
                      for u, v, cost in self.graph.edges())
        return Snapshot(
            tick=self.tick_count,
            time=self.env.now,
            state=self.state.value,
            vertices=vertices,
            edges=edges,
            path=path,
            node_failure_probability=self.failures.node_probability,
            link_failure_probability=self.failures.link_probability,
        )

    def _recompute_and_publish(self):
        result = self.current_path()
        if result.found:
            self._emit("path_computed", source=result.source, sink=result.sink,
                       path=list(result.path), cost=result.cost)
        else:
            self._emit("no_path", source=result.source, sink=result.sink)
        snapshot = self.snapshot(path=result)
        self.last_snapshot = snapshot
        for observer in self.observers:
            self._notify(observer, "on_snapshot", snapshot)
        return snapshot

    # ---------- Observers ----------

    def add_observer(self, observer):
        self.observers.append(observer)

    def remove_observer(self, observer):
        if observer in self.observers:
            self.observers.remove(observer)

    def _emit(self, kind, **data):
        event = SimulationEvent(kind, self.tick_count, data, self.env.now)
        for observer in self.observers:
            self._notify(observer, "on_event", event)
        return event

    def _notify(self, observer, hook, payload):
        callback = getattr(observer, hook, None)
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            logger.exception(f"Observer {observer!r} failed in {hook}")

    def _topology_error(self, error, **data):
        logger.warning(f"Topology change rejected: {error}")
        self._emit("topology_error", reason=error.reason, message=str(error), **data)

    def _configuration_error(self, error, **data):
        logger.warning(f"Configuration change rejected: {error}")
        self._emit("configuration_error", reason=error.reason, message=str(error), **data)
