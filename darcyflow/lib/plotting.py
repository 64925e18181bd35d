"""Matplotlib previews of cellwise fields."""

import numpy as np
import matplotlib.pyplot as plt


def draw_cell_scalar(ax, mesh, cell_values, cmap=plt.cm.viridis, title=""):
    """Fill every cell with the colour of its value and add a colorbar."""
    vmin, vmax = cell_values.min(), cell_values.max()
    val_norm = (cell_values - vmin) / (vmax - vmin + 1e-12)
    for cell_id, cell in enumerate(mesh.cells):
        verts = mesh.vertices[cell]
        poly = plt.Polygon(verts, facecolor=cmap(val_norm[cell_id]), edgecolor='black', linewidth=0.3)
        ax.add_patch(poly)

    all_verts = mesh.vertices
    ax.set_xlim(all_verts[:, 0].min()-0.05, all_verts[:, 0].max()+0.05)
    ax.set_ylim(all_verts[:, 1].min()-0.05, all_verts[:, 1].max()+0.05)
    ax.set_aspect('equal')
    ax.set_title(title)

    sm = plt.cm.ScalarMappable(cmap=cmap, norm=plt.Normalize(vmin=vmin, vmax=vmax))
    sm.set_array([])
    plt.colorbar(sm, ax=ax)


def plot_solution(solver, solution, filename=None):
    """
    Plot the cell averages of the pressure and of the velocity magnitude,
    with a quiver of the mean velocity at the cell centroids.

    Parameters:
    -----------
    solver : MixedDarcySolver
    solution : BlockVector
    filename : str, optional
        Save the figure there; otherwise it is returned open

    Returns:
    --------
    matplotlib.figure.Figure
    """
    mesh = solver.mesh
    cents = np.array([mesh.cell_centroid(i) for i in range(mesh.n_cells)])
    values = solver.cell_averages(solution)
    u_avg, v_avg, p_avg = values[:, 0], values[:, 1], values[:, 2]
    vel_mag = np.sqrt(u_avg**2 + v_avg**2)

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(8, 8))

    draw_cell_scalar(ax1, mesh, vel_mag, cmap=plt.cm.viridis, title="Velocity Magnitude |u|")
    ax1.quiver(cents[:, 0], cents[:, 1], u_avg, v_avg, color='white', alpha=0.6)

    draw_cell_scalar(ax2, mesh, p_avg, cmap=plt.cm.RdBu_r,
                     title=f"Pressure (min={p_avg.min():.3e}, max={p_avg.max():.3e})")

    fig.tight_layout()
    if filename is not None:
        fig.savefig(filename)
        plt.close(fig)
    return fig
