"""Decimation of ground truth matches to a bounded, evenly spread subset for display.

Matches are kept at a near-uniform stride of M / K over the whole list. The stride walk uses an integer accumulator,
so no floating point error builds up over long lists: entry i is kept exactly when floor(i * K / M) advances, which
keeps the first entry, preserves the original order and retains exactly K entries.

Authors: gtmviz developers
"""
from typing import Tuple

import numpy as np

DEFAULT_MAX_MATCHES = 50


def compute_decimation_mask(num_matches: int, max_matches: int = DEFAULT_MAX_MATCHES) -> np.ndarray:
    """Computes which of `num_matches` ordered matches to keep so that at most `max_matches` remain.

    Args:
        num_matches: number of matches M in the list to decimate.
        max_matches: cap K on the number of retained matches.

    Returns:
        Boolean retention mask of shape (M,).

    Raises:
        ValueError: if the cap is not positive or the number of matches is negative.
    """
    if max_matches < 1:
        raise ValueError(f"Cap on the number of matches must be positive, got {max_matches}.")
    if num_matches < 0:
        raise ValueError(f"Number of matches cannot be negative, got {num_matches}.")

    if num_matches <= max_matches:
        return np.ones(num_matches, dtype=bool)

    mask = np.zeros(num_matches, dtype=bool)
    # acc == (i * K) mod M at step i.
    acc = 0
    for i in range(num_matches):
        if acc < max_matches:
            mask[i] = True
        acc = (acc + max_matches) % num_matches

    return mask


def decimate_match_indices(
    match_indices: np.ndarray, max_matches: int = DEFAULT_MAX_MATCHES
) -> Tuple[np.ndarray, np.ndarray]:
    """Reduces the matches to at most `max_matches` evenly spread entries.

    Args:
        match_indices: matches as indices of keypoints from both images, of shape (M, 2).
        max_matches: cap on the number of retained matches.

    Returns:
        Boolean retention mask of shape (M,).
        Retained matches, of shape (K', 2) with K' <= max_matches, in their original order.
    """
    mask = compute_decimation_mask(match_indices.shape[0], max_matches)
    return mask, match_indices[mask]
