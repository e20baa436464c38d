#!/usr/bin/env python3
"""
Runs the mesh routing simulation headless.

Example:
    python run_simulation.py --ticks 20 --seed 7 --plot final.png
"""
import argparse
import json
import logging
import sys

import simpy

from config import SimulationConfig
from errors import ConfigurationError
from network_sim import NetworkSimulation
from observers import EventLog
from routing import ShortestPathRouting
from utils import setup_logger

logger = setup_logger("Main")


def build_parser():
    parser = argparse.ArgumentParser(description="Failure-aware mesh routing simulation")
    parser.add_argument("--ticks", type=int, default=10, help="number of clock ticks to run")
    parser.add_argument("--seed", type=int, default=None, help="seed for failure draws")
    parser.add_argument("--node-p", type=float, default=None, help="per-tick router flip probability")
    parser.add_argument("--link-p", type=float, default=None, help="per-tick link flip probability")
    parser.add_argument("--interval", type=float, default=None, help="time units between ticks")
    parser.add_argument("--source", default=None)
    parser.add_argument("--sink", default=None)
    parser.add_argument("--config", default=None, help="JSON file with SimulationConfig fields")
    parser.add_argument("--realtime", type=float, default=None,
                        help="wall-clock seconds per time unit (runs in real time)")
    parser.add_argument("--plot", default=None, help="save the final snapshot as an image")
    parser.add_argument("--describe", action="store_true", help="print the topology before running")
    parser.add_argument("--verify", action="store_true",
                        help="cross-check every path cost against networkx")
    parser.add_argument("--json", action="store_true", help="print the final snapshot as JSON")
    parser.add_argument("--quiet", action="store_true", help="only print the final result")
    return parser


def load_config(args):
    data = {}
    if args.config:
        with open(args.config) as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ConfigurationError(f"{args.config} must hold a JSON object")
    overrides = {
        "seed": args.seed,
        "node_failure_probability": args.node_p,
        "link_failure_probability": args.link_p,
        "tick_interval": args.interval,
        "source": args.source,
        "sink": args.sink,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    return SimulationConfig.from_dict(data)


class CostVerifier:
    """Compares every published path cost with networkx's Dijkstra."""

    def __init__(self, sim):
        self.reference = ShortestPathRouting(sim.graph, sim.failures)
        self.mismatches = 0

    def on_snapshot(self, snapshot):
        expected = self.reference.find_path(snapshot.path.source, snapshot.path.sink)
        if expected.cost != snapshot.path.cost:
            self.mismatches += 1
            logger.error(f"Tick {snapshot.tick}: engine cost {snapshot.path.cost} "
                         f"!= networkx cost {expected.cost}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.quiet:
        logging.getLogger("NetworkSim").setLevel(logging.WARNING)

    try:
        config = load_config(args)
        env = simpy.RealtimeEnvironment(factor=args.realtime, strict=False) \
            if args.realtime else simpy.Environment()
        log = EventLog(forward=not args.quiet)
        sim = NetworkSimulation(env, config, observers=[log])
    except OSError as e:
        logger.error(f"Cannot read configuration: {e}")
        return 2
    except (ConfigurationError, json.JSONDecodeError, TypeError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.describe:
        print(sim.graph.show())
        print("DFS:", " ".join(sim.graph.dfs(sim.source)))
        print("BFS:", " ".join(sim.graph.bfs(sim.source)))

    verifier = None
    if args.verify:
        verifier = CostVerifier(sim)
        sim.add_observer(verifier)

    snapshot = sim.advance(args.ticks) if args.ticks > 0 else sim.snapshot()

    if args.json:
        print(json.dumps(snapshot.to_dict(), indent=2))
    elif snapshot.path.found:
        print(f"Shortest path after {sim.tick_count} ticks: "
              f"{' -> '.join(snapshot.path.path)} (cost {snapshot.path.cost})")
    else:
        print(f"No available path from {sim.source} to {sim.sink} after {sim.tick_count} ticks")

    if args.plot:
        from visualization import use_headless_backend, visualize_network
        use_headless_backend()
        visualize_network(snapshot, filename=args.plot)

    if verifier is not None and verifier.mismatches:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
