import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon, Rectangle
from matplotlib.collections import PatchCollection

ELEMENT_COLORS = {
    3: ("#87CEEB", "Triangle"),
    4: ("#90EE90", "Quad"),
    "other": ("#D3D3D3", "Other"),
}

GROUP_COLORS = ("#90EE90", "#FFA07A", "#87CEEB", "#FFD700", "#D3D3D3")


def polygon_area(points):
    """Calculates the area of a polygon using the shoelace formula."""
    x = points[:, 0]
    y = points[:, 1]
    return 0.5 * np.abs(np.dot(x, np.roll(y, 1)) - np.dot(y, np.roll(x, 1)))


def get_geometry_extent(nodes):
    """Computes the extent of the geometry based on node coordinates."""
    min_coords = np.min(nodes, axis=0)
    max_coords = np.max(nodes, axis=0)
    extent = np.linalg.norm(max_coords - min_coords)
    return extent if extent > 0 else 1.0


def plot_mesh(ax, nodes, cells, show_cells=False, groups=None, title="Mesh"):
    """
    Plots a 2D mesh outline.

    Args:
        ax: Matplotlib axes object.
        nodes (np.ndarray): Array of node coordinates (num_nodes, 2).
        cells (list): List of lists, where each inner list contains the node
            indices of a cell boundary in polygon order.
        show_cells (bool): Whether to display cell labels.
        groups (list, optional): A group label per cell (e.g. "Cartesian",
            "Cut"). Cells are colored by group when given and by number of
            sides otherwise.
        title (str, optional): The title for the plot.
    """
    nodes = np.asarray(nodes)[:, :2]
    geometry_extent = get_geometry_extent(nodes)

    group_colors = None
    if groups is not None:
        unique_groups = list(dict.fromkeys(groups))
        group_colors = {
            g: GROUP_COLORS[i % len(GROUP_COLORS)] for i, g in enumerate(unique_groups)
        }

    patches = []
    for i, cell_conn in enumerate(cells):
        points = nodes[cell_conn]

        if group_colors is not None:
            color = group_colors[groups[i]]
        else:
            color, _ = ELEMENT_COLORS.get(len(cell_conn), ELEMENT_COLORS["other"])

        patches.append(Polygon(points, facecolor=color, edgecolor="k", alpha=0.7, lw=0.5))

        if show_cells:
            area = polygon_area(points)
            # Scale font size based on the element area relative to the geometry extent
            font_scale_factor = np.sqrt(area) / geometry_extent
            cell_fontsize = min(max(2, int(font_scale_factor * 120)), 10)

            cell_centroid = np.mean(points, axis=0)
            ax.text(
                cell_centroid[0],
                cell_centroid[1],
                str(i),
                color="black",
                ha="center",
                va="center",
                fontsize=cell_fontsize,
                weight="bold",
                bbox=dict(
                    facecolor="white",
                    alpha=0.6,
                    edgecolor="none",
                    boxstyle="round,pad=0.2",
                ),
            )

    ax.add_collection(PatchCollection(patches, match_original=True))
    _style_axes(ax, title)

    legend_handles = []
    if group_colors is not None:
        for group, color in group_colors.items():
            count = sum(1 for g in groups if g == group)
            legend_handles.append(
                Rectangle((0, 0), 1, 1, color=color, label=f"{group} (#{count})")
            )
    else:
        cell_counts = {}
        for cell in cells:
            label = ELEMENT_COLORS.get(len(cell), ELEMENT_COLORS["other"])[1]
            cell_counts[label] = cell_counts.get(label, 0) + 1

        for color, label in ELEMENT_COLORS.values():
            count = cell_counts.get(label, 0)
            if count > 0:
                legend_handles.append(
                    Rectangle((0, 0), 1, 1, color=color, label=f"{label} (#{count})")
                )

    ax.legend(
        handles=legend_handles,
        loc="upper left",
        bbox_to_anchor=(1.0, 1.0),
        fontsize=14,
        frameon=False,
        ncol=1,
    )


def plot_quadrature_points(ax, x, y, w=None, title="Quadrature"):
    """
    Scatters quadrature points, sized by weight when weights are given.

    Args:
        ax: Matplotlib axes object.
        x, y (np.ndarray): Point coordinates.
        w (np.ndarray, optional): Quadrature weights.
        title (str, optional): The title for the plot.
    """
    x = np.ravel(x)
    y = np.ravel(y)
    if w is None:
        sizes = 8.0
    else:
        w = np.abs(np.ravel(w))
        sizes = 4.0 + 60.0 * w / max(w.max(), np.finfo(float).tiny)
    ax.scatter(x, y, s=sizes, c="darkred", alpha=0.8, edgecolors="none")
    _style_axes(ax, title)


def _style_axes(ax, title):
    ax.set_title(title, fontsize=18, pad=20)
    ax.set_xlabel("X", fontsize=14, labelpad=8)
    ax.set_ylabel("Y", fontsize=14, labelpad=8)
    ax.grid(True, linestyle="--", alpha=0.5)
    ax.set_aspect("equal", adjustable="box")
    ax.tick_params(axis="both", which="major", pad=2, labelsize=12)
    ax.autoscale_view()

    for spine in ax.spines.values():
        spine.set_visible(False)


def save_figure(fig, file_path):
    """Saves a figure and closes it."""
    fig.savefig(file_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Plot saved to: {file_path}")
