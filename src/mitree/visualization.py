"""Meta-tree visualisation helpers."""

from __future__ import annotations

from typing import Optional, Sequence

import matplotlib
matplotlib.use("Agg")  # non-interactive backend for safe headless rendering
import matplotlib.pyplot as plt
import numpy as np

from .ruleset import NUMERIC
from .tree import TreeNode


def branch_label(node: TreeNode, branch: int) -> str:
    """Text of the test on edge *branch* of an internal node."""
    if node.kind == NUMERIC:
        op = "<" if branch == 0 else ">="
        return f"{node.attribute} {op} {node.threshold:.6g}"
    value = node.branch_values[branch]
    if value is None:
        others = [v for v in node.branch_values if v is not None]
        return f"{node.attribute} != {' / '.join(others)}"
    return f"{node.attribute} = {value}"


def leaf_label(
    node: TreeNode,
    class_names: Sequence[str],
    normalize_by: Optional[float] = None,
) -> str:
    """``class (weight/error)`` as printed by C4.5, weights optionally normalised."""
    totals = node.class_totals()
    if totals is None or not np.any(totals):
        return "null (0.0)"
    best = int(np.argmax(totals))
    weight = float(totals.sum())
    error = weight - float(totals[best])
    if normalize_by:
        weight /= normalize_by
        error /= normalize_by
    text = f"{class_names[best]} ({weight:.2f}"
    if error > 0:
        text += f"/{error:.2f}"
    return text + ")"


def export_dot(
    root: TreeNode,
    class_names: Sequence[str],
    *,
    normalize_by: Optional[float] = None,
) -> str:
    """Export a tree in Graphviz DOT format.

    Returns
    -------
    str
        DOT-language string that can be rendered by ``graphviz`` or ``dot``.
    """
    lines = [
        "digraph MetaTree {",
        'node [shape=box, style="rounded", fontname="helvetica"] ;',
        'edge [fontname="helvetica"] ;',
    ]
    counter = 0

    def visit(node: TreeNode) -> int:
        nonlocal counter
        node_id = counter
        counter += 1
        if node.is_leaf:
            label = leaf_label(node, class_names, normalize_by)
            lines.append(f'{node_id} [label="{_escape(label)}"] ;')
            return node_id
        lines.append(f'{node_id} [label="{_escape(node.attribute)}"] ;')
        for branch, child in enumerate(node.children):
            child_id = visit(child)
            edge = _escape(branch_label(node, branch).split(" ", 1)[1])
            lines.append(f'{node_id} -> {child_id} [label="{edge}"] ;')
        return node_id

    visit(root)
    lines.append("}")
    return "\n".join(lines)


def plot_meta_tree(
    root: TreeNode,
    class_names: Sequence[str],
    *,
    figsize: tuple[int, int] = (20, 10),
    fontsize: int = 9,
    normalize_by: Optional[float] = None,
    save_path: Optional[str] = None,
    dpi: int = 150,
) -> None:
    """Render a tree with matplotlib.

    Parameters
    ----------
    root : TreeNode
        Tree to draw.
    class_names : sequence of str
        Class labels in distribution order.
    figsize : tuple, default (20, 10)
        Matplotlib figure size.
    fontsize : int, default 9
        Font size for node labels.
    normalize_by : float or None
        Divide leaf weights by this value (e.g. the forest size).
    save_path : str or None
        If given, save the figure to this path (PNG, PDF, SVG, ...).
    dpi : int, default 150
        Resolution when saving.
    """
    positions: dict[int, tuple[float, float]] = {}
    nodes: dict[int, TreeNode] = {}
    edges: list[tuple[int, int, str]] = []
    next_leaf = 0
    counter = 0

    def layout(node: TreeNode, depth: int) -> int:
        nonlocal next_leaf, counter
        node_id = counter
        counter += 1
        nodes[node_id] = node
        if node.is_leaf:
            positions[node_id] = (float(next_leaf), -float(depth))
            next_leaf += 1
            return node_id
        child_ids = []
        for branch, child in enumerate(node.children):
            child_id = layout(child, depth + 1)
            child_ids.append(child_id)
            edges.append((node_id, child_id, branch_label(node, branch).split(" ", 1)[1]))
        xs = [positions[c][0] for c in child_ids]
        positions[node_id] = ((min(xs) + max(xs)) / 2, -float(depth))
        return node_id

    layout(root, 0)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.set_axis_off()
    for parent, child, text in edges:
        (x0, y0), (x1, y1) = positions[parent], positions[child]
        ax.plot([x0, x1], [y0, y1], color="0.5", linewidth=1, zorder=1)
        ax.text(
            (x0 + x1) / 2, (y0 + y1) / 2, text,
            ha="center", va="center", fontsize=fontsize - 1,
            bbox=dict(boxstyle="round", fc="white", ec="none"), zorder=2,
        )
    for node_id, (x, y) in positions.items():
        node = nodes[node_id]
        if node.is_leaf:
            text = leaf_label(node, class_names, normalize_by)
            face = "#e8f4e8"
        else:
            text = node.attribute
            face = "#e8eef8"
        ax.text(
            x, y, text, ha="center", va="center", fontsize=fontsize,
            bbox=dict(boxstyle="round", fc=face, ec="0.3"), zorder=3,
        )
    ax.set_xlim(-1, max(next_leaf, 1))
    ax.set_ylim(-(root.depth + 0.5), 0.5)
    ax.set_title("Meta Induction Tree", fontsize=fontsize + 4)

    if save_path is not None:
        fig.savefig(save_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)


def _escape(text: str) -> str:
    return str(text).replace("\\", "\\\\").replace('"', '\\"')
