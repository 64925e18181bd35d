"""VTK file export utilities for scalar and vector fields."""

from pathlib import Path
import numpy as np


DARCY_FIELDS = {
    "u": {"type": "scalar", "components": [0]},
    "v": {"type": "scalar", "components": [1]},
    "p": {"type": "scalar", "components": [2]},
    "velocity": {"type": "vector", "components": [0, 1]},
}


def export_to_vtk(solver, solution, filename="solution.vtk", fields=None, method="P1_vertex"):
    """
    Export solution to VTK format with flexible field specification.

    Parameters:
    -----------
    solver : MixedDarcySolver
        The solver containing mesh and evaluate_at_points method
    solution : BlockVector
        Solution vector
    filename : str
        Output VTK filename
    fields : dict or None
        {"field_name": {"type": "scalar"|"vector", "components": [indices]}}
        with component indices into (u_x, u_y, p). Defaults to u, v, p
        and the velocity vector.
    method : str
        Export method: "P0" (cell centroids) or "P1_vertex" (vertex
        values averaged over the adjacent cells)
    """
    if fields is None:
        fields = DARCY_FIELDS

    if method == "P0":
        _export_vtk_p0(solver, solution, filename, fields)
    elif method == "P1_vertex":
        _export_vtk_p1_vertex(solver, solution, filename, fields)
    else:
        raise ValueError(f"Unknown export method: {method}")


def _allocate(fields, n):
    field_data = {}
    for field_name, field_spec in fields.items():
        if field_spec["type"] == "scalar":
            field_data[field_name] = np.zeros(n)
        elif field_spec["type"] == "vector":
            field_data[field_name] = np.zeros((n, len(field_spec["components"])))
        else:
            raise ValueError(f"Unknown field type: {field_spec['type']}")
    return field_data


def _extract(sol_values, field_spec):
    components = field_spec["components"]
    if field_spec["type"] == "scalar":
        return sol_values[:, components[0]]
    return sol_values[:, components]


def _export_vtk_p0(solver, solution, filename, fields):
    """Export with P0 projection (cell-centered values)."""
    mesh = solver.mesh
    field_data = _allocate(fields, mesh.n_cells)

    for cell_id in range(mesh.n_cells):
        cent = mesh.cell_centroid(cell_id)
        sol_values = solver.evaluate_at_points(solution, cell_id, np.atleast_2d(cent))
        for field_name, field_spec in fields.items():
            field_data[field_name][cell_id] = _extract(sol_values, field_spec)[0]

    _write_vtk_file(mesh, filename, fields, field_data, data_location="CELL")
    if solver.verbose:
        print(f"P0 projection exported to: {filename}")


def _export_vtk_p1_vertex(solver, solution, filename, fields):
    """Export with P1 vertex interpolation (vertex-centered values)."""
    mesh = solver.mesh
    field_data = _allocate(fields, mesh.n_vertices)
    vertex_count = np.zeros(mesh.n_vertices)

    # Interpolate to vertices using averaging from adjacent cells
    for cell_id, cell in enumerate(mesh.cells):
        sol_values = solver.evaluate_at_points(solution, cell_id, mesh.vertices[cell])
        for field_name, field_spec in fields.items():
            np.add.at(field_data[field_name], cell, _extract(sol_values, field_spec))
        np.add.at(vertex_count, cell, 1)

    # Average values at vertices shared by multiple cells
    for field_name, field_spec in fields.items():
        if field_spec["type"] == "scalar":
            field_data[field_name] /= np.maximum(vertex_count, 1)
        else:
            field_data[field_name] /= np.maximum(vertex_count, 1)[:, None]

    _write_vtk_file(mesh, filename, fields, field_data, data_location="POINT")
    if solver.verbose:
        print(f"P1 vertex interpolation exported to: {filename}")


def write_fields(mesh, field_names, field_values, filename, data_location="POINT"):
    """
    Write already evaluated fields.

    Parameters:
    -----------
    mesh : QuadMesh
    field_names : list of str
    field_values : list of arrays
        (n,) for scalars or (n, 2|3) for vectors, with n the number of
        vertices (POINT) or cells (CELL)
    filename : str
    data_location : str
        "POINT" or "CELL"
    """
    if len(field_names) != len(field_values):
        raise ValueError(f"{len(field_names)} field names for {len(field_values)} fields")

    fields, field_data = {}, {}
    for name, values in zip(field_names, field_values):
        values = np.asarray(values, dtype=float)
        if values.ndim == 1:
            fields[name] = {"type": "scalar", "components": [0]}
        else:
            fields[name] = {"type": "vector", "components": list(range(values.shape[1]))}
        field_data[name] = values

    _write_vtk_file(mesh, filename, fields, field_data, data_location=data_location)


def _write_vtk_file(mesh, filename, fields, field_data, data_location="POINT"):
    """
    Write VTK file with mesh and field data.

    Parameters:
    -----------
    mesh : Mesh object
    filename : str
    fields : dict
        Field specifications
    field_data : dict
        {field_name: field_values_array}
    data_location : str
        "POINT" or "CELL"
    """
    n_expected = mesh.n_vertices if data_location == "POINT" else mesh.n_cells
    for field_name, data in field_data.items():
        if len(data) != n_expected:
            raise ValueError(f"Field {field_name} has {len(data)} values, expected {n_expected}")

    output_path = Path(filename)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        # Header
        f.write("# vtk DataFile Version 3.0\n")
        f.write("Mixed Darcy solution\n")
        f.write("ASCII\n")
        f.write("DATASET UNSTRUCTURED_GRID\n")

        # Points
        f.write(f"POINTS {mesh.n_vertices} double\n")
        for v in mesh.vertices:
            f.write(f"{v[0]} {v[1]} 0.0\n")

        # Cells
        total_size = sum(len(cell) + 1 for cell in mesh.cells)
        f.write(f"\nCELLS {mesh.n_cells} {total_size}\n")
        for cell in mesh.cells:
            f.write(f"{len(cell)} " + " ".join(map(str, cell)) + "\n")

        # Cell types
        f.write(f"\nCELL_TYPES {mesh.n_cells}\n")
        for _ in mesh.cells:
            f.write("9\n")  # VTK_QUAD

        # Data section header
        if data_location == "POINT":
            f.write(f"\nPOINT_DATA {mesh.n_vertices}\n")
        else:  # CELL
            f.write(f"\nCELL_DATA {mesh.n_cells}\n")

        # Write all fields
        for field_name, field_spec in fields.items():
            field_type = field_spec["type"]
            data = field_data[field_name]

            if field_type == "scalar":
                f.write(f"SCALARS {field_name} double 1\n")
                f.write("LOOKUP_TABLE default\n")
                for val in data:
                    f.write(f"{val}\n")

            elif field_type == "vector":
                f.write(f"VECTORS {field_name} double\n")
                for vec in data:
                    # VTK vectors must be 3D
                    if len(vec) == 2:
                        f.write(f"{vec[0]} {vec[1]} 0.0\n")
                    elif len(vec) == 3:
                        f.write(f"{vec[0]} {vec[1]} {vec[2]}\n")
                    else:
                        raise ValueError(f"Unsupported vector dimension: {len(vec)}")
