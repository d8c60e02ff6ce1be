"""Class to hold coordinates and optional metadata for the keypoints stored in a GTM file.

Authors: gtmviz developers
"""
from typing import List, Optional

import cv2 as cv
import numpy as np

# defaults for OpenCV's Keypoint attributes
OPENCV_DEFAULT_SIZE = 2


class Keypoints:
    """Keypoints of one image of a GTM pair.

    Coordinate system convention:
        1. The x coordinate denotes the horizontal direction (+ve direction towards the right).
        2. The y coordinate denotes the vertical direction (+ve direction downwards).
        3. Origin is at the top left corner of the image.

    The identity of a keypoint is its row index; correspondences refer to keypoints by this index.
    """

    def __init__(
        self,
        coordinates: np.ndarray,
        scales: Optional[np.ndarray] = None,
        responses: Optional[np.ndarray] = None,
    ):
        """Initializes the attributes.

        Args:
            coordinates: The (x, y) coordinates of the features, of shape Nx2.
            scales: Optional scale (OpenCV keypoint size) of the detections, of shape N.
            responses: Optional confidences/responses for each detection, of shape N.
        """
        self.coordinates = coordinates
        self.scales = scales
        self.responses = responses

    def __len__(self) -> int:
        """Number of keypoints."""
        return self.coordinates.shape[0]

    def __eq__(self, other: object) -> bool:
        """Checks equality with the other keypoints object."""

        if not isinstance(other, Keypoints):
            return False

        # Equality check on coordinates.
        coordinates_eq = np.array_equal(self.coordinates, other.coordinates)

        # Equality check on scales.
        if self.scales is None and other.scales is None:
            scales_eq = True
        elif self.scales is not None and other.scales is not None:
            scales_eq = np.array_equal(self.scales, other.scales)
        else:
            scales_eq = False

        # equality check on responses
        if self.responses is None and other.responses is None:
            responses_eq = True
        elif self.responses is not None and other.responses is not None:
            responses_eq = np.array_equal(self.responses, other.responses)
        else:
            responses_eq = False

        return coordinates_eq and scales_eq and responses_eq

    def cast_to_float(self) -> "Keypoints":
        """Cast all attributes which are numpy arrays to float.

        Returns:
            Keypoints with the type-casted attributes.
        """
        return Keypoints(
            coordinates=None if self.coordinates is None else self.coordinates.astype(np.float32),
            scales=None if self.scales is None else self.scales.astype(np.float32),
            responses=None if self.responses is None else self.responses.astype(np.float32),
        )

    def cast_to_opencv_keypoints(self) -> List[cv.KeyPoint]:
        """Cast keypoints to a list of OpenCV's keypoints, as required by OpenCV's drawing routines.

        Returns:
            List of OpenCV's keypoints with the same information as the current keypoints.
        """

        # Cast input attributed to floating point numpy arrays.
        keypoints = self.cast_to_float()

        opencv_keypoints = []
        for idx in range(len(keypoints)):
            opencv_keypoints.append(
                cv.KeyPoint(
                    x=float(keypoints.coordinates[idx, 0]),
                    y=float(keypoints.coordinates[idx, 1]),
                    size=OPENCV_DEFAULT_SIZE if keypoints.scales is None else float(keypoints.scales[idx]),
                    response=0.0 if keypoints.responses is None else float(keypoints.responses[idx]),
                )
            )

        return opencv_keypoints
