import logging
import time
from collections import deque

from snapshot import SimulationObserver
from utils import setup_logger

logger = setup_logger()


def format_event(event):
    """Human-readable line for a SimulationEvent."""
    d = event.data
    kind = event.kind
    if kind == "vertex_added":
        return f"Node {d['vertex']} initialized with failure status: {d['down']}"
    if kind == "edge_added":
        return (f"Link from {d['u']} to {d['v']} initialized with cost {d['cost']} "
                f"and failure status: {d['down']}")
    if kind == "vertex_removed":
        return f"Node {d['vertex']} removed"
    if kind == "edge_removed":
        return f"Link between {d['u']} and {d['v']} removed"
    if kind == "vertex_toggled":
        return f"{d['vertex']} failure status updated to: {d['down']}"
    if kind == "edge_toggled":
        return f"Link {d['u']}-{d['v']} failure status updated to: {d['down']}"
    if kind == "path_computed":
        return (f"Current shortest path from {d['source']} to {d['sink']}: "
                f"{' -> '.join(d['path'])} (cost {d['cost']})")
    if kind == "no_path":
        return f"No available path from {d['source']} to {d['sink']} due to failures."
    if kind == "paused":
        return "Simulation paused."
    if kind == "resumed":
        return "Simulation resumed."
    if kind == "reset":
        return "All routers and links reset to healthy."
    if kind == "probabilities_changed":
        return (f"Failure probabilities set to node={d['node_probability']} "
                f"link={d['link_probability']}")
    if kind == "endpoints_changed":
        return f"Routing from {d['source']} to {d['sink']}"
    if kind in ("topology_error", "configuration_error"):
        return f"Rejected ({d['reason']}): {d['message']}"
    return f"{kind}: {d}"


class EventLog(SimulationObserver):
    """
    Log collaborator: timestamps every event, keeps the most recent lines
    for display and forwards them to the NetworkSim logger.
    """

    WARNING_KINDS = ("topology_error", "configuration_error", "no_path")

    def __init__(self, maxlen=500, forward=True, clock=time.time):
        self.entries = deque(maxlen=maxlen)
        self.forward = forward
        self.clock = clock

    def on_event(self, event):
        message = format_event(event)
        entry = {
            "Timestamp": time.strftime("%I:%M:%S %p", time.localtime(self.clock())),
            "Sim Time": event.time,
            "Tick": event.tick,
            "Event": event.kind,
            "Message": message,
        }
        self.entries.append(entry)
        if self.forward:
            if event.kind in ("vertex_added", "edge_added"):
                level = logging.DEBUG
            elif event.kind in self.WARNING_KINDS:
                level = logging.WARNING
            else:
                level = logging.INFO
            logger.log(level, message)

    def on_snapshot(self, snapshot):
        down = snapshot.down_vertices()
        if down and self.forward:
            logger.debug(f"Tick {snapshot.tick}: routers down: {', '.join(down)}")

    def lines(self, last=None):
        entries = list(self.entries)
        if last is not None:
            entries = entries[-last:]
        return [f"{e['Timestamp']} - {e['Message']}" for e in entries]

    def clear(self):
        self.entries.clear()


class SnapshotRecorder(SimulationObserver):
    """Keeps every snapshot and event it is handed, in order."""

    def __init__(self):
        self.snapshots = []
        self.events = []

    def on_snapshot(self, snapshot):
        self.snapshots.append(snapshot)

    def on_event(self, event):
        self.events.append(event)

    def events_of(self, kind):
        return [e for e in self.events if e.kind == kind]

    def paths(self):
        return [s.path.path for s in self.snapshots]

    @property
    def latest(self):
        return self.snapshots[-1] if self.snapshots else None
