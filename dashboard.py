import streamlit as st
import simpy
import pandas as pd

from config import SimulationConfig
from network_sim import NetworkSimulation
from observers import EventLog
from visualization import visualize_network


# Helper to reset simulation state
def reset_network(seed=None):
    config = SimulationConfig(seed=seed)

    st.session_state.env = simpy.Environment()
    st.session_state.event_log = EventLog(maxlen=1000, forward=False)
    st.session_state.net_sim = NetworkSimulation(
        st.session_state.env, config, observers=[st.session_state.event_log]
    )
    st.session_state.path_history = []
    st.session_state.net_sim.start()
    st.session_state.snapshot = st.session_state.net_sim.snapshot()


def record_snapshot(snapshot):
    if snapshot is None:
        return
    st.session_state.snapshot = snapshot
    st.session_state.path_history.append({
        "Tick": snapshot.tick,
        "Time": snapshot.time,
        "Path": " -> ".join(snapshot.path.path) if snapshot.path.found else "No Path",
        "Cost": snapshot.path.cost,
        "Routers Down": len(snapshot.down_vertices()),
        "Links Down": len(snapshot.down_edges()),
    })


# Initialize Session State if not present
if 'net_sim' not in st.session_state:
    reset_network()

sim = st.session_state.net_sim

st.title("Mesh Network Failure Simulation")

# Sidebar Setup
st.sidebar.header("🛠️ Network Setup")

with st.sidebar.expander("Rebuild Network", expanded=False):
    seed_text = st.text_input("Random Seed (blank = random)", "")
    if st.button("Rebuild"):
        reset_network(seed=int(seed_text) if seed_text.strip() else None)
        st.rerun()

st.sidebar.write("---")
st.sidebar.header("Simulation Controls")

state_label = "⏸️ Paused" if sim.is_paused else "▶️ Running"
st.sidebar.write(f"State: **{state_label}**")

col_a, col_b = st.sidebar.columns(2)
if sim.is_paused:
    if col_a.button("Resume Simulation"):
        sim.resume()
        st.rerun()
else:
    if col_a.button("Pause Simulation"):
        sim.pause()
        st.rerun()

if col_b.button("Reset Failures"):
    record_snapshot(sim.reset())
    st.rerun()

steps = st.sidebar.number_input("Ticks to Run", min_value=1, max_value=500, value=1)
if st.sidebar.button("Advance Clock"):
    for _ in range(int(steps)):
        snap = sim.advance(1)
        if not sim.is_paused:  # paused ticks publish nothing new
            record_snapshot(snap)
    st.rerun()

with st.sidebar.expander("Failure Probabilities", expanded=True):
    node_p = st.slider("Router flip probability", 0.0, 1.0, float(sim.failures.node_probability), 0.01)
    link_p = st.slider("Link flip probability", 0.0, 1.0, float(sim.failures.link_probability), 0.01)
    if st.button("Apply Probabilities"):
        if sim.set_probabilities(node_p, link_p):
            st.success("Probabilities updated.")
        else:
            st.error("Probabilities must be within [0, 1].")

with st.sidebar.expander("Route Endpoints", expanded=False):
    routers = sim.graph.vertices()
    source = st.selectbox("Source", routers, index=routers.index(sim.source))
    sink = st.selectbox("Sink", routers, index=routers.index(sim.sink))
    if st.button("Set Endpoints"):
        if sim.set_endpoints(source, sink):
            st.session_state.snapshot = sim.snapshot()
            st.rerun()
        else:
            st.error("Unknown router.")

with st.sidebar.expander("Manual Failures", expanded=False):
    router = st.selectbox("Router", sim.graph.vertices(), key="manual_router")
    r_fail, r_restore = st.columns(2)
    if r_fail.button("Fail Router"):
        sim.set_router_down(router, True)
        st.session_state.snapshot = sim.snapshot()
        st.rerun()
    if r_restore.button("Restore Router"):
        sim.set_router_down(router, False)
        st.session_state.snapshot = sim.snapshot()
        st.rerun()

    links = [(u, v) for u, v, _ in sim.graph.edges()]
    if links:
        link = st.selectbox("Link", links, format_func=lambda e: f"{e[0]} - {e[1]}", key="manual_link")
        l_fail, l_restore = st.columns(2)
        if l_fail.button("Fail Link"):
            sim.set_link_down(*link, True)
            st.session_state.snapshot = sim.snapshot()
            st.rerun()
        if l_restore.button("Restore Link"):
            sim.set_link_down(*link, False)
            st.session_state.snapshot = sim.snapshot()
            st.rerun()

snapshot = st.session_state.snapshot

# Layout
col1, col2 = st.columns([2, 1])

with col1:
    st.subheader("Network Topology")
    fig = visualize_network(snapshot, return_fig=True)
    st.pyplot(fig)

with col2:
    st.subheader("Current Route")
    if snapshot.path.found:
        st.metric("Path Cost", snapshot.path.cost)
        st.metric("Hops", snapshot.path.hops)
        st.write(" → ".join(snapshot.path.path))
    else:
        st.warning(f"No available path from {snapshot.path.source} to {snapshot.path.sink} due to failures.")

    m1, m2 = st.columns(2)
    m1.metric("Routers Down", len(snapshot.down_vertices()))
    m2.metric("Links Down", len(snapshot.down_edges()))
    st.metric("Tick", snapshot.tick)

tab1, tab2, tab3 = st.tabs(["📜 Event Log", "🖧 Routers & Links", "📈 Route History"])

with tab1:
    entries = list(st.session_state.event_log.entries)
    if entries:
        df = pd.DataFrame(entries[-100:][::-1])
        st.dataframe(df, use_container_width=True)
    else:
        st.info("No events yet.")

with tab2:
    r_col, l_col = st.columns(2)
    r_col.dataframe(pd.DataFrame(
        [{"Router": v.id, "Status": "Down" if v.down else "Up"} for v in snapshot.vertices]
    ))
    l_col.dataframe(pd.DataFrame(
        [{"Link": f"{e.u} - {e.v}", "Cost": e.cost, "Status": "Down" if e.down else "Up"}
         for e in snapshot.edges]
    ))

with tab3:
    if st.session_state.path_history:
        hist = pd.DataFrame(st.session_state.path_history)
        st.line_chart(hist, x="Tick", y=["Routers Down", "Links Down"])
        st.dataframe(hist.tail(20), use_container_width=True)
        reachable = hist["Cost"].notna().mean() * 100
        st.metric("Sink Reachable", f"{reachable:.1f}% of ticks")
    else:
        st.info("Advance the clock to build a route history.")
