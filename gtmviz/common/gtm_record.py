"""Ground truth matches (GTM) of one image pair, as parsed from a GTM file.

Authors: gtmviz developers
"""

from typing import Any, Dict, NamedTuple, Optional

import numpy as np

from gtmviz.common.keypoints import Keypoints


class MalformedGtmError(ValueError):
    """Raised when the contents of a GTM record are inconsistent, e.g. a match refers to a missing keypoint."""


class GtmRecord(NamedTuple):
    """Matches, keypoints and statistics stored in a single GTM file.

    Args:
        match_indices: ground truth matches as indices of keypoints from both images, of shape (M, 2). Column 0
            indexes `keypoints_left`, column 1 indexes `keypoints_right`.
        keypoints_left: keypoints in the left/first image.
        keypoints_right: keypoints in the right/second image.
        inlier_ratio_left: inlier ratio in the left/first image.
        inlier_ratio_right: inlier ratio in the right/second image.
        inlier_ratio_mean: mean inlier ratio of both images.
        num_true_positives: number of true positive matches.
        num_negatives_left: number of left keypoints without a corresponding right keypoint.
        num_negatives_right: number of right keypoints without a corresponding left keypoint.
        match_threshold: threshold (in pixels) used to generate the GTM.
        left_inlier_mask: optional flag per left keypoint, true if it participates in a ground truth match.
        file_name: name of the GTM file the record was read from.
    """

    match_indices: np.ndarray
    keypoints_left: Keypoints
    keypoints_right: Keypoints
    inlier_ratio_left: float
    inlier_ratio_right: float
    inlier_ratio_mean: float
    num_true_positives: int
    num_negatives_left: int
    num_negatives_right: int
    match_threshold: float
    left_inlier_mask: Optional[np.ndarray] = None
    file_name: Optional[str] = None

    @property
    def num_matches(self) -> int:
        """Number of ground truth matches."""
        return self.match_indices.shape[0]

    def get_statistics(self) -> Dict[str, Any]:
        """Returns the scalar statistics of the record, keyed by name."""
        return {
            "inlier_ratio_left": self.inlier_ratio_left,
            "inlier_ratio_right": self.inlier_ratio_right,
            "inlier_ratio_mean": self.inlier_ratio_mean,
            "num_true_positives": self.num_true_positives,
            "num_negatives_left": self.num_negatives_left,
            "num_negatives_right": self.num_negatives_right,
            "match_threshold": self.match_threshold,
        }
