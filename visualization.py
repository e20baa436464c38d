import networkx as nx
import matplotlib
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches


def snapshot_graph(snapshot):
    """networkx.Graph rebuilt from a snapshot, with 'down' and 'weight' attributes."""
    graph = nx.Graph()
    for vertex in snapshot.vertices:
        graph.add_node(vertex.id, down=vertex.down)
    for edge in snapshot.edges:
        graph.add_edge(edge.u, edge.v, weight=edge.cost, down=edge.down)
    return graph


def visualize_network(snapshot, filename="network_topology.png", return_fig=False, layout_seed=42):
    """
    Draws a snapshot of the mesh.
    - Routers that are up -> Green, down -> Red
    - Links that are up -> solid gray, down -> dashed red
    - The current source -> sink path is highlighted in blue

    Args:
        snapshot: Snapshot handed out by NetworkSimulation
        filename: where to save the figure when return_fig is False
        return_fig: return the matplotlib figure instead of saving it
        layout_seed: seed for the spring layout so frames line up tick to tick
    """
    graph = snapshot_graph(snapshot)
    fig = plt.figure(figsize=(12, 10))

    pos = nx.spring_layout(graph, seed=layout_seed, weight=None)

    # 1. Router coloring
    node_colors = []
    node_sizes = []
    path_nodes = set(snapshot.path.path or ())
    for node, data in graph.nodes(data=True):
        node_colors.append('#FF4444' if data["down"] else '#44FF44')
        node_sizes.append(700 if node in path_nodes else 500)

    nx.draw_networkx_nodes(graph, pos, node_color=node_colors, node_size=node_sizes, edgecolors='black')

    # 2. Links
    up_edges = [(u, v) for u, v, down in graph.edges(data="down") if not down]
    down_edges = [(u, v) for u, v, down in graph.edges(data="down") if down]
    nx.draw_networkx_edges(graph, pos, edgelist=up_edges, alpha=0.5, edge_color='gray')
    nx.draw_networkx_edges(graph, pos, edgelist=down_edges, alpha=0.4, edge_color='red', style='dashed')

    legend_patches = [
        mpatches.Patch(color='#44FF44', label='Router Up'),
        mpatches.Patch(color='#FF4444', label='Router Down'),
        mpatches.Patch(color='red', label='Link Down'),
    ]

    # 3. Path highlighting
    path = snapshot.path.path
    if path and len(path) > 1:
        path_edges = list(zip(path, path[1:]))
        nx.draw_networkx_edges(graph, pos, edgelist=path_edges, edge_color='blue', width=4, alpha=0.8)
        legend_patches.append(mpatches.Patch(color='blue', label=f"Path (cost {snapshot.path.cost})"))
        title = f"{snapshot.path.source} -> {snapshot.path.sink}: {' -> '.join(path)}"
    else:
        title = f"No available path from {snapshot.path.source} to {snapshot.path.sink}"

    nx.draw_networkx_labels(graph, pos, font_size=8, font_weight='bold')

    edge_labels = nx.get_edge_attributes(graph, 'weight')
    nx.draw_networkx_edge_labels(graph, pos, edge_labels=edge_labels, font_size=8)

    plt.legend(handles=legend_patches, loc='upper left', bbox_to_anchor=(1, 1))
    plt.title(f"Tick {snapshot.tick} ({snapshot.state}) - {title}")
    plt.axis('off')
    plt.tight_layout()

    if return_fig:
        plt.close(fig)
        return fig

    try:
        plt.savefig(filename)
        print(f"Network visualization saved to {filename}")
    finally:
        plt.close(fig)


class PlotObserver:
    """
    Saves one figure per snapshot as <prefix>_<frame>.png. Frames are
    numbered by arrival, so a reset snapshot that repeats a tick number
    still gets its own file.
    """

    def __init__(self, prefix="network"):
        self.prefix = prefix
        self.files = []
        self.frames = 0

    def on_snapshot(self, snapshot):
        self.frames += 1
        filename = f"{self.prefix}_{self.frames:04d}.png"
        visualize_network(snapshot, filename=filename)
        self.files.append(filename)


def use_headless_backend():
    matplotlib.use("Agg")
