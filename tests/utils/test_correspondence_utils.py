"""Unit tests for the extraction of correspondence coordinates.

Authors: gtmviz developers
"""
import unittest

import numpy as np

import gtmviz.utils.correspondence as correspondence_utils
from gtmviz.common.gtm_record import MalformedGtmError
from gtmviz.common.keypoints import Keypoints

KEYPOINTS_I1 = Keypoints(coordinates=np.array([[0.0, 1.0], [10.0, 11.0], [20.0, 21.0]]))
KEYPOINTS_I2 = Keypoints(coordinates=np.array([[100.0, 101.0], [110.0, 111.0]]))


class TestCorrespondenceUtils(unittest.TestCase):
    """Unit tests for extract_correspondence_coordinates and validate_match_indices."""

    def test_rows_are_aligned(self):
        """Row r of both outputs holds the two endpoints of match r."""
        match_indices = np.array([[2, 0], [0, 1], [1, 1]])

        uv_i1, uv_i2 = correspondence_utils.extract_correspondence_coordinates(
            KEYPOINTS_I1, KEYPOINTS_I2, match_indices
        )

        np.testing.assert_allclose(uv_i1, np.array([[20.0, 21.0], [0.0, 1.0], [10.0, 11.0]]))
        np.testing.assert_allclose(uv_i2, np.array([[100.0, 101.0], [110.0, 111.0], [110.0, 111.0]]))
        self.assertEqual(uv_i1.dtype, np.float64)

    def test_shared_keypoints_are_not_deduplicated(self):
        """A keypoint used by several matches appears once per match."""
        match_indices = np.array([[1, 0], [1, 0], [1, 1]])

        uv_i1, uv_i2 = correspondence_utils.extract_correspondence_coordinates(
            KEYPOINTS_I1, KEYPOINTS_I2, match_indices
        )

        self.assertEqual(uv_i1.shape, (3, 2))
        self.assertEqual(uv_i2.shape, (3, 2))
        np.testing.assert_allclose(uv_i1, np.tile([10.0, 11.0], (3, 1)))

    def test_retention_mask(self):
        """Only retained matches are extracted, in their original order."""
        match_indices = np.array([[0, 0], [1, 1], [2, 0], [2, 1]])
        mask = np.array([True, False, True, False])

        uv_i1, uv_i2 = correspondence_utils.extract_correspondence_coordinates(
            KEYPOINTS_I1, KEYPOINTS_I2, match_indices, mask
        )

        np.testing.assert_allclose(uv_i1, np.array([[0.0, 1.0], [20.0, 21.0]]))
        np.testing.assert_allclose(uv_i2, np.array([[100.0, 101.0], [100.0, 101.0]]))

    def test_nothing_retained(self):
        match_indices = np.array([[0, 0], [1, 1]])

        uv_i1, uv_i2 = correspondence_utils.extract_correspondence_coordinates(
            KEYPOINTS_I1, KEYPOINTS_I2, match_indices, np.zeros(2, dtype=bool)
        )

        self.assertEqual(uv_i1.shape, (0, 2))
        self.assertEqual(uv_i2.shape, (0, 2))

    def test_no_matches(self):
        uv_i1, uv_i2 = correspondence_utils.extract_correspondence_coordinates(
            KEYPOINTS_I1, KEYPOINTS_I2, np.zeros((0,), dtype=np.int64)
        )

        self.assertEqual(uv_i1.shape, (0, 2))
        self.assertEqual(uv_i2.shape, (0, 2))

    def test_left_index_out_of_bounds(self):
        match_indices = np.array([[0, 0], [3, 1]])

        with self.assertRaisesRegex(MalformedGtmError, "left keypoint 3"):
            correspondence_utils.extract_correspondence_coordinates(KEYPOINTS_I1, KEYPOINTS_I2, match_indices)

    def test_right_index_out_of_bounds(self):
        match_indices = np.array([[0, 2]])

        with self.assertRaisesRegex(MalformedGtmError, "right keypoint 2"):
            correspondence_utils.extract_correspondence_coordinates(KEYPOINTS_I1, KEYPOINTS_I2, match_indices)

    def test_negative_index(self):
        with self.assertRaises(MalformedGtmError):
            correspondence_utils.validate_match_indices(np.array([[-1, 0]]), 3, 2)

    def test_invalid_match_outside_mask_is_rejected(self):
        """Matches are validated whether they are retained or not."""
        match_indices = np.array([[0, 0], [5, 0]])

        with self.assertRaises(MalformedGtmError):
            correspondence_utils.extract_correspondence_coordinates(
                KEYPOINTS_I1, KEYPOINTS_I2, match_indices, np.array([True, False])
            )

    def test_wrong_match_shape(self):
        with self.assertRaises(MalformedGtmError):
            correspondence_utils.validate_match_indices(np.array([[0, 0, 0]]), 3, 2)

    def test_mask_length_mismatch(self):
        match_indices = np.array([[0, 0], [1, 1]])

        with self.assertRaises(ValueError):
            correspondence_utils.extract_correspondence_coordinates(
                KEYPOINTS_I1, KEYPOINTS_I2, match_indices, np.array([True, False, True])
            )


if __name__ == "__main__":
    unittest.main()
