"""Base class for the geometric verification of the displayed ground truth matches.

The verifier estimates a fundamental matrix from the retained correspondences. The estimate is a consistency probe:
success indicates that the retained subset is not degenerate. It is logged and reported, but nothing downstream
depends on it.

Authors: gtmviz developers
"""

import abc
from enum import Enum, unique
from typing import NamedTuple, Optional

import numpy as np

import gtmviz.utils.logger as logger_utils
import gtmviz.utils.verification as verification_utils

NUM_MATCHES_REQ_F_MATRIX = 8

logger = logger_utils.get_logger()


@unique
class VerificationStatus(str, Enum):
    """Outcome of a verification attempt."""

    ESTIMATED: str = "ESTIMATED"
    INAPPLICABLE: str = "INAPPLICABLE"  # too few correspondences, estimation was not attempted.
    FAILED: str = "FAILED"  # the estimator did not return a valid matrix.


class VerificationResult(NamedTuple):
    """Fundamental matrix i2Fi1 (if estimated) and a summary of its agreement with the correspondences."""

    status: VerificationStatus
    num_correspondences: int
    i2Fi1: Optional[np.ndarray] = None
    mean_sampson_distance: Optional[float] = None


class FundamentalVerifierBase(metaclass=abc.ABCMeta):
    """Base class for all verifiers.

    Verifiers take the index-aligned coordinates of correspondences as inputs and estimate the fundamental matrix.
    """

    def __init__(self, min_correspondences: int = NUM_MATCHES_REQ_F_MATRIX) -> None:
        """Initializes the verifier.

        Args:
            min_correspondences: minimum number of correspondences required by the estimation method.
        """
        self._min_correspondences = min_correspondences

    def __repr__(self) -> str:
        return f"{type(self).__name__}__min{self._min_correspondences}"

    @abc.abstractmethod
    def estimate(self, uv_i1: np.ndarray, uv_i2: np.ndarray) -> Optional[np.ndarray]:
        """Estimates the fundamental matrix from correspondences.

        Args:
            uv_i1: coordinates of the correspondences in image #i1, of shape (N, 2).
            uv_i2: coordinates of the correspondences in image #i2, of shape (N, 2), index-aligned with uv_i1.

        Returns:
            i2Fi1: fundamental matrix as 3x3 array, or None if it cannot be estimated.
        """

    def verify(self, uv_i1: np.ndarray, uv_i2: np.ndarray) -> VerificationResult:
        """Estimates the fundamental matrix for the correspondences and logs the outcome.

        Too few correspondences, or an estimator failure, are reported in the result and never raised.

        Args:
            uv_i1: coordinates of the correspondences in image #i1, of shape (N, 2).
            uv_i2: coordinates of the correspondences in image #i2, of shape (N, 2), index-aligned with uv_i1.

        Returns:
            Outcome of the verification.

        Raises:
            ValueError: if the two coordinate arrays are not index-aligned.
        """
        if uv_i1.shape != uv_i2.shape:
            raise ValueError(f"Correspondences are not aligned: {uv_i1.shape} vs. {uv_i2.shape}.")

        num_correspondences = uv_i1.shape[0]
        if num_correspondences < self._min_correspondences:
            logger.info(
                "Fundamental matrix estimation inapplicable: %d correspondences, %d required.",
                num_correspondences,
                self._min_correspondences,
            )
            return VerificationResult(status=VerificationStatus.INAPPLICABLE, num_correspondences=num_correspondences)

        i2Fi1 = self.estimate(uv_i1, uv_i2)
        if not verification_utils.is_valid_fundamental_matrix(i2Fi1):
            logger.warning(
                "Fundamental matrix estimation failed for %d correspondences (degenerate configuration?).",
                num_correspondences,
            )
            return VerificationResult(status=VerificationStatus.FAILED, num_correspondences=num_correspondences)

        mean_sampson_distance = verification_utils.compute_mean_sampson_distance(uv_i1, uv_i2, i2Fi1)
        logger.info("Estimated fundamental matrix from %d correspondences:\n%s", num_correspondences, i2Fi1)
        logger.info("Mean Sampson distance: %.3f px", mean_sampson_distance)
        return VerificationResult(
            status=VerificationStatus.ESTIMATED,
            num_correspondences=num_correspondences,
            i2Fi1=i2Fi1,
            mean_sampson_distance=mean_sampson_distance,
        )
