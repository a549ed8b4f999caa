"""Face Landmarker mesh index for each point of the 68-point iBUG layout."""

from __future__ import annotations

import numpy as np

MESH_LANDMARK_COUNT = 478

# Order follows the iBUG 300-W annotation: jaw 0-16, brows 17-26, nose 27-35,
# eyes 36-47, outer lip 48-59, inner lip 60-67.
MESH_TO_IBUG68: tuple[int, ...] = (
    # jaw
    127, 234, 93, 132, 58, 172, 136, 150, 152, 379, 365, 397, 288, 361, 323, 454, 356,
    # right brow, left brow (subject side)
    70, 63, 105, 66, 107,
    336, 296, 334, 293, 300,
    # nose bridge and base
    168, 197, 5, 4,
    75, 97, 2, 326, 305,
    # right eye
    33, 160, 158, 133, 153, 144,
    # left eye
    362, 385, 387, 263, 373, 380,
    # outer lip
    61, 39, 37, 0, 267, 269, 291, 405, 314, 17, 84, 181,
    # inner lip
    78, 82, 13, 312, 308, 317, 14, 87,
)


def mesh_to_ibug68(mesh_xy: np.ndarray) -> np.ndarray:
    """Select the 68 iBUG points from a ``(N, 2)`` mesh array."""
    mesh = np.asarray(mesh_xy, dtype=np.float64)
    if mesh.ndim != 2 or mesh.shape[1] < 2 or mesh.shape[0] <= max(MESH_TO_IBUG68):
        raise ValueError(f"Mesh array must be (>={max(MESH_TO_IBUG68) + 1}, 2), got: {mesh.shape}")
    return mesh[list(MESH_TO_IBUG68), :2]
