"""Utilities to measure how well the displayed correspondences agree with an estimated fundamental matrix.

Authors: gtmviz developers
"""
from typing import Optional

import numpy as np


def is_valid_fundamental_matrix(i2Fi1: Optional[np.ndarray]) -> bool:
    """Checks that an estimate is a single finite 3x3 matrix.

    OpenCV returns None on failure, and may stack several solutions vertically (e.g. 9x3 for the 7-point method).
    """
    return isinstance(i2Fi1, np.ndarray) and i2Fi1.shape == (3, 3) and bool(np.isfinite(i2Fi1).all())


def compute_sampson_distances(uv_i1: np.ndarray, uv_i2: np.ndarray, i2Fi1: np.ndarray) -> np.ndarray:
    """Sampson distance of each retained correspondence under a fundamental matrix, in pixels.

    For x1, x2 in homogeneous coordinates, the residual x2^T F x1 is normalized by the gradient of the epipolar
    constraint, i.e. by the normals of the epipolar lines F x1 (in image i2) and F^T x2 (in image i1):

        d = |x2^T F x1| / sqrt((F x1)_x^2 + (F x1)_y^2 + (F^T x2)_x^2 + (F^T x2)_y^2)

    Reference: Hartley & Zisserman, Multiple View Geometry in Computer Vision, 2nd ed., eq. 11.9.

    Args:
        uv_i1: coordinates of the correspondences in image i1, of shape (R, 2).
        uv_i2: coordinates of the correspondences in image i2, of shape (R, 2), index-aligned with uv_i1.
        i2Fi1: fundamental matrix mapping points of image i1 to epipolar lines in image i2.

    Returns:
        Distance per correspondence, of shape (R,).
    """
    num_correspondences = uv_i1.shape[0]
    x_i1 = np.column_stack([uv_i1, np.ones(num_correspondences)])
    x_i2 = np.column_stack([uv_i2, np.ones(num_correspondences)])

    lines_i2 = x_i1 @ i2Fi1.T
    lines_i1 = x_i2 @ i2Fi1
    residuals = np.einsum("ij,ij->i", x_i2, lines_i2)
    gradient_norms = np.sqrt(np.sum(lines_i2[:, :2] ** 2, axis=1) + np.sum(lines_i1[:, :2] ** 2, axis=1))

    return np.abs(residuals) / gradient_norms


def compute_mean_sampson_distance(uv_i1: np.ndarray, uv_i2: np.ndarray, i2Fi1: np.ndarray) -> Optional[float]:
    """Mean Sampson distance of the correspondences, in pixels; None if there are no correspondences."""
    if uv_i1.shape[0] == 0:
        return None

    return float(np.mean(compute_sampson_distances(uv_i1, uv_i2, i2Fi1)))
