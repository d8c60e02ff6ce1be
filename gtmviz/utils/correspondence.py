"""Utilities to turn keypoint-index matches into index-aligned coordinate arrays.

Authors: gtmviz developers
"""
from typing import Optional, Tuple

import numpy as np

from gtmviz.common.gtm_record import MalformedGtmError
from gtmviz.common.keypoints import Keypoints


def validate_match_indices(match_indices: np.ndarray, num_keypoints_i1: int, num_keypoints_i2: int) -> None:
    """Checks that every match refers to existing keypoints in both images.

    Args:
        match_indices: matches as indices of keypoints from both images, of shape (M, 2).
        num_keypoints_i1: number of keypoints in image #i1.
        num_keypoints_i2: number of keypoints in image #i2.

    Raises:
        MalformedGtmError: if the matches have the wrong shape, or any index is negative or out of bounds.
    """
    if match_indices.size == 0:
        return

    if match_indices.ndim != 2 or match_indices.shape[1] != 2:
        raise MalformedGtmError(f"Matches must be of shape (M, 2), got {match_indices.shape}.")

    for col, num_keypoints, side in ((0, num_keypoints_i1, "left"), (1, num_keypoints_i2, "right")):
        invalid = np.flatnonzero((match_indices[:, col] < 0) | (match_indices[:, col] >= num_keypoints))
        if invalid.size > 0:
            first = invalid[0]
            raise MalformedGtmError(
                f"Match #{first} refers to {side} keypoint {match_indices[first, col]}, "
                f"but only {num_keypoints} {side} keypoints exist ({invalid.size} invalid matches in total)."
            )


def extract_correspondence_coordinates(
    keypoints_i1: Keypoints,
    keypoints_i2: Keypoints,
    match_indices: np.ndarray,
    retention_mask: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Gathers the coordinates of both endpoints of the retained matches.

    There is one row per match, not per unique keypoint: a keypoint shared by two matches appears twice.

    Args:
        keypoints_i1: keypoints in image #i1.
        keypoints_i2: keypoints in image #i2.
        match_indices: all matches as indices of keypoints from both images, of shape (M, 2).
        retention_mask: optional boolean mask of shape (M,) selecting the matches to extract. All are used if None.

    Returns:
        Coordinates of the retained matches in image #i1, of shape (R, 2).
        Coordinates of the retained matches in image #i2, of shape (R, 2). Row r of both arrays belongs to the same
            match, and rows follow the original order of the matches.

    Raises:
        ValueError: if the mask does not have one entry per match.
        MalformedGtmError: if any match refers to a missing keypoint, retained or not.
    """
    if match_indices.size == 0:
        match_indices = match_indices.reshape(0, 2)
    validate_match_indices(match_indices, len(keypoints_i1), len(keypoints_i2))

    if retention_mask is not None:
        retention_mask = np.asarray(retention_mask, dtype=bool)
        if retention_mask.shape != (match_indices.shape[0],):
            raise ValueError(
                f"Retention mask of shape {retention_mask.shape} does not match {match_indices.shape[0]} matches."
            )
        match_indices = match_indices[retention_mask]

    if match_indices.shape[0] == 0:
        return np.zeros((0, 2)), np.zeros((0, 2))

    uv_i1 = keypoints_i1.coordinates[match_indices[:, 0]].astype(np.float64)
    uv_i2 = keypoints_i2.coordinates[match_indices[:, 1]].astype(np.float64)
    return uv_i1, uv_i2
