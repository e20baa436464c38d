import matplotlib

matplotlib.use("Agg")

import pytest
import simpy
from matplotlib.figure import Figure

import run_simulation
from network_sim import NetworkSimulation
from observers import EventLog, SnapshotRecorder, format_event
from snapshot import SimulationEvent
from visualization import PlotObserver, snapshot_graph, visualize_network


def test_format_event_messages():
    toggled = SimulationEvent("vertex_toggled", 3, {"vertex": "Router-4", "down": True})
    assert format_event(toggled) == "Router-4 failure status updated to: True"
    path = SimulationEvent("path_computed", 1, {"source": "a", "sink": "c", "path": ["a", "c"], "cost": 2})
    assert format_event(path) == "Current shortest path from a to c: a -> c (cost 2)"
    rejected = SimulationEvent("topology_error", 0, {"reason": "duplicate", "message": "dup"})
    assert format_event(rejected) == "Rejected (duplicate): dup"


def test_event_log_keeps_recent_lines(triangle_config):
    log = EventLog(maxlen=4, forward=False, clock=lambda: 0)
    sim = NetworkSimulation(simpy.Environment(), triangle_config, observers=[log])
    sim.pause()
    sim.resume()
    assert len(log.entries) == 4
    assert log.lines(last=2)[-2].endswith("Simulation paused.")
    assert log.lines(last=2)[-1].endswith("Simulation resumed.")
    log.clear()
    assert log.lines() == []


def test_recorder_collects_in_order(triangle_config):
    recorder = SnapshotRecorder()
    sim = NetworkSimulation(simpy.Environment(), triangle_config, observers=[recorder])
    sim.tick()
    sim.reset()
    assert [s.tick for s in recorder.snapshots] == [1, 1]
    assert recorder.paths() == [("a", "c"), ("a", "c")]


def test_visualize_snapshot(triangle_config):
    sim = NetworkSimulation(simpy.Environment(), triangle_config)
    sim.failures.set_edge_down("a", "c")
    snapshot = sim.tick()
    graph = snapshot_graph(snapshot)
    assert graph["a"]["c"]["down"] is True
    assert graph["a"]["b"]["weight"] == 3
    assert isinstance(visualize_network(snapshot, return_fig=True), Figure)


def test_plot_observer_writes_files(triangle_config, tmp_path):
    plotter = PlotObserver(prefix=str(tmp_path / "frame"))
    sim = NetworkSimulation(simpy.Environment(), triangle_config, observers=[plotter])
    sim.advance(2)
    assert len(plotter.files) == 2
    assert all((tmp_path / f"frame_{i:04d}.png").exists() for i in (1, 2))


def test_plot_observer_keeps_frames_after_reset(triangle_config, tmp_path):
    plotter = PlotObserver(prefix=str(tmp_path / "frame"))
    sim = NetworkSimulation(simpy.Environment(), triangle_config, observers=[plotter])
    sim.advance(1)
    sim.reset()
    assert sim.last_snapshot.tick == 1
    assert len(set(plotter.files)) == 2
    assert (tmp_path / "frame_0002.png").exists()


def test_cli_runs_and_verifies(capsys):
    assert run_simulation.main(["--ticks", "5", "--seed", "4", "--quiet", "--verify"]) == 0
    out = capsys.readouterr().out
    assert "after 5 ticks" in out


def test_cli_rejects_bad_probability():
    assert run_simulation.main(["--node-p", "1.5", "--quiet"]) == 2


@pytest.mark.parametrize("content", [
    None,
    "{not json",
    "[1, 2]",
    '{"routers": 5}',
    '{"links": [5]}',
])
def test_cli_rejects_bad_config_file(tmp_path, content):
    path = tmp_path / "mesh.json"
    if content is not None:
        path.write_text(content)
    assert run_simulation.main(["--config", str(path), "--quiet"]) == 2
