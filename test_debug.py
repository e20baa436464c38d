
import simpy
from network_sim import NetworkSimulation
from config import SimulationConfig

def test_standard():
    env = simpy.Environment()

    # Deterministic failures
    config = SimulationConfig(seed=42)
    net_sim = NetworkSimulation(env, config)

    print("Graph nodes:", net_sim.graph.vertices())
    print("Graph edges:", len(net_sim.graph.edges()))
    assert len(net_sim.graph) == 20

    src, dst = net_sim.source, net_sim.sink
    print(f"Finding path from {src} to {dst}")

    snapshot = net_sim.advance(3)
    print("Path found:", snapshot.path.path)
    assert snapshot.tick == 3

    snapshot = net_sim.reset()
    print("Path after reset:", snapshot.path.path, "cost", snapshot.path.cost)
    assert snapshot.path.path[0] == src and snapshot.path.path[-1] == dst

if __name__ == "__main__":
    test_standard()
