from __future__ import annotations

from typing import Dict, List, Tuple

import networkx as nx

# Stage → color map
STAGE_COLORS: Dict[str, str] = {
    "start": "#90EE90",
    "collect": "#87CEEB",
    "decision": "#DDA0DD",
    "end": "#FFA07A",
}


def _layered_layout(g: nx.DiGraph, order: List[str]) -> Dict[str, Tuple[float, float]]:
    # Longest-path depth on x, nodes sharing a depth spread on y
    depth: Dict[str, int] = {}
    for n in order:
        preds = list(g.predecessors(n))
        depth[n] = 1 + max(depth[p] for p in preds) if preds else 0

    grouped: Dict[int, List[str]] = {}
    for n in order:
        grouped.setdefault(depth[n], []).append(n)

    pos: Dict[str, Tuple[float, float]] = {}
    col_gap = 3.0
    row_gap = 1.5
    for col, nodes in sorted(grouped.items()):
        offset = (len(nodes) - 1) * row_gap / 2.0
        for i, n in enumerate(nodes):
            pos[n] = (col * col_gap, -offset + i * row_gap)
    return pos


def draw_with_legend(g: nx.DiGraph, save_path: str, order: List[str]) -> None:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    from matplotlib.patches import Patch

    pos = _layered_layout(g, order) if order else nx.spring_layout(g, seed=42, k=0.7)
    colors = [STAGE_COLORS.get(g.nodes[n].get("stage", ""), "#D3D3D3") for n in g.nodes()]

    plt.figure(figsize=(18, 8))
    nx.draw_networkx_nodes(g, pos, node_color=colors, node_size=2200,
                           edgecolors="#444444", linewidths=2)
    nx.draw_networkx_edges(g, pos, arrows=True, arrowstyle="-|>", arrowsize=22, width=2.4,
                           edge_color="#555555", connectionstyle="arc3,rad=0.06")
    nx.draw_networkx_labels(g, pos, labels={n: n.replace("_", "\n") for n in g.nodes()},
                            font_size=9, font_weight="bold", font_color="#111111")

    edge_labels = {(u, v): a["context"] for u, v, a in g.edges(data=True) if a.get("context")}
    if edge_labels:
        nx.draw_networkx_edge_labels(
            g,
            pos,
            edge_labels=edge_labels,
            font_size=8.5,
            bbox=dict(boxstyle="round,pad=0.3", facecolor="white", edgecolor="gray", alpha=0.9),
            label_pos=0.55,
        )

    handles = [Patch(facecolor=col, edgecolor="#444444", label=stage) for stage, col in STAGE_COLORS.items()]
    plt.legend(handles=handles, title="Stage", loc="lower left", bbox_to_anchor=(1.02, 0), borderaxespad=0.0)

    plt.axis("off")
    plt.tight_layout()
    plt.savefig(save_path, dpi=200, bbox_inches="tight", facecolor="white", edgecolor="none")
    plt.close()
