"""Utilities for generating synthetic two-view correspondences with known epipolar geometry.

Authors: gtmviz developers
"""
from typing import Tuple

import numpy as np

from gtmviz.common.keypoints import Keypoints

# Pinhole intrinsics of the simulated cameras, for 640x480 images.
DEFAULT_INTRINSICS = np.array([[500.0, 0.0, 320.0], [0.0, 500.0, 240.0], [0.0, 0.0, 1.0]])


def skew_symmetric(vector: np.ndarray) -> np.ndarray:
    """Cross product matrix [v]_x of a 3-vector, such that [v]_x @ w = v x w."""
    x, y, z = vector
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def rotation_about_y(angle_rad: float) -> np.ndarray:
    c, s = np.cos(angle_rad), np.sin(angle_rad)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def sample_points_in_frustum(
    num_points: int,
    range_x: Tuple[float, float] = (-2.0, 2.0),
    range_y: Tuple[float, float] = (-1.5, 1.5),
    range_depth: Tuple[float, float] = (4.0, 10.0),
    seed: int = 0,
) -> np.ndarray:
    """Samples random 3D points in front of a camera at the origin looking down +z.

    Args:
        num_points: number of points to sample.
        range_x: range of the x coordinates of samples.
        range_y: range of the y coordinates of samples.
        range_depth: range of the z coordinates of samples.
        seed: seed of the random generator.

    Returns:
        3d points, of shape (num_points, 3).
    """
    rng = np.random.default_rng(seed)
    x = rng.uniform(range_x[0], range_x[1], size=num_points)
    y = rng.uniform(range_y[0], range_y[1], size=num_points)
    z = rng.uniform(range_depth[0], range_depth[1], size=num_points)
    return np.stack([x, y, z], axis=1)


def project(points_3d: np.ndarray, K: np.ndarray, cRw: np.ndarray, ctw: np.ndarray) -> np.ndarray:
    """Projects 3d points with the camera x_c = cRw @ x_w + ctw, returning pixel coordinates of shape Nx2."""
    points_camera = points_3d @ cRw.T + ctw
    uv_homogenous = points_camera @ K.T
    return uv_homogenous[:, :2] / uv_homogenous[:, 2:]


def simulate_two_view_scene(
    num_points: int, seed: int = 0, K: np.ndarray = DEFAULT_INTRINSICS
) -> Tuple[Keypoints, Keypoints, np.ndarray]:
    """Generates a general (non-planar) scene seen by two cameras, and projects the points to both cameras.

    Camera i1 sits at the world origin. Camera i2 is rotated about the vertical axis and translated sideways.

    Args:
        num_points: number of 3d points.
        seed: seed of the random generator.
        K: intrinsics shared by both cameras.

    Returns:
        Keypoints for image i1, of length num_points.
        Keypoints for image i2, of length num_points, index-aligned with the ones of image i1.
        Fundamental matrix i2Fi1.
    """
    points_3d = sample_points_in_frustum(num_points, seed=seed)

    i2Ri1 = rotation_about_y(np.deg2rad(5.0))
    i2ti1 = np.array([-1.0, 0.1, 0.2])

    uv_i1 = project(points_3d, K, np.eye(3), np.zeros(3))
    uv_i2 = project(points_3d, K, i2Ri1, i2ti1)

    K_inv = np.linalg.inv(K)
    i2Fi1 = K_inv.T @ skew_symmetric(i2ti1) @ i2Ri1 @ K_inv
    i2Fi1 = i2Fi1 / np.linalg.norm(i2Fi1)

    return Keypoints(coordinates=uv_i1), Keypoints(coordinates=uv_i2), i2Fi1
