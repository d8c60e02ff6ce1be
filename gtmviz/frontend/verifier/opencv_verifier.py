"""OpenCV-based fundamental matrix verifier.

By default the verifier runs the plain 8-point algorithm on all correspondences; robust variants are available for
experiments through the configuration.

References:
- R. Hartley. In defense of the eight-point algorithm. TPAMI, 1997.
- https://docs.opencv.org/4.x/d9/d0c/group__calib3d.html#gae420abc34eaa03d0c6a67359609d8429

Authors: gtmviz developers
"""
from enum import Enum, unique
from typing import Optional

import cv2
import numpy as np

import gtmviz.utils.logger as logger_utils
from gtmviz.frontend.verifier.verifier_base import NUM_MATCHES_REQ_F_MATRIX, FundamentalVerifierBase

RANSAC_SUCCESS_PROB = 0.99
RANSAC_MAX_ITERS = 10000

logger = logger_utils.get_logger()


@unique
class RobustEstimationType(str, Enum):
    """Fundamental matrix estimation methods of OpenCV."""

    FM_7POINT: str = "FM_7POINT"
    FM_8POINT: str = "FM_8POINT"
    FM_RANSAC: str = "FM_RANSAC"  # RANSAC algorithm. It needs at least 15 points. 7-point algorithm is used.
    FM_LMEDS: str = "FM_LMEDS"
    USAC_FM_8PTS: str = "USAC_FM_8PTS"  # LO-RANSAC. Only valid for Fundamental matrix with 8-points solver.
    USAC_MAGSAC: str = "USAC_MAGSAC"  # MAGSAC++.


class OpencvFundamentalVerifier(FundamentalVerifierBase):
    def __init__(
        self,
        estimation_type: RobustEstimationType = RobustEstimationType.FM_8POINT,
        estimation_threshold_px: float = 3.0,
        min_correspondences: int = NUM_MATCHES_REQ_F_MATRIX,
    ) -> None:
        """Initializes the verifier.

        Args:
            estimation_type: OpenCV estimation method. Also accepts the name of the method, as given in configs.
            estimation_threshold_px: maximum distance (in pixels) from the epipolar line to consider a correspondence
                an inlier. Ignored by the non-robust methods.
            min_correspondences: minimum number of correspondences required by the estimation method.
        """
        super().__init__(min_correspondences=min_correspondences)
        self._estimation_type = RobustEstimationType(estimation_type)
        self._estimation_threshold_px = estimation_threshold_px

    def __repr__(self) -> str:
        return f"{type(self).__name__}__{self._estimation_type.value}_{self._estimation_threshold_px}px"

    def estimate(self, uv_i1: np.ndarray, uv_i2: np.ndarray) -> Optional[np.ndarray]:
        """Estimates the fundamental matrix from correspondences.

        Args:
            uv_i1: coordinates of the correspondences in image #i1, of shape (N, 2).
            uv_i2: coordinates of the correspondences in image #i2, of shape (N, 2), index-aligned with uv_i1.

        Returns:
            i2Fi1: fundamental matrix as 3x3 array, or None if OpenCV could not estimate it.
        """
        try:
            i2Fi1, _ = cv2.findFundamentalMat(
                uv_i1.astype(np.float32),
                uv_i2.astype(np.float32),
                method=getattr(cv2, self._estimation_type.value),
                ransacReprojThreshold=self._estimation_threshold_px,
                confidence=RANSAC_SUCCESS_PROB,
                maxIters=RANSAC_MAX_ITERS,
            )
        except cv2.error as e:
            logger.warning("OpenCV fundamental matrix estimation raised: %s", e)
            return None

        return i2Fi1
