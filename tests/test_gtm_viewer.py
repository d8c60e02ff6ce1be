"""Unit tests for the GTM viewer, with the reader, renderer and display mocked.

Authors: gtmviz developers
"""
import os
import tempfile
import unittest
from typing import Optional
from unittest.mock import MagicMock

import numpy as np

import gtmviz.utils.io as io_utils
import gtmviz.utils.logger as logger_utils
import gtmviz.utils.sampling as sampling_utils
from gtmviz.common.gtm_record import GtmRecord, MalformedGtmError
from gtmviz.common.image import Image
from gtmviz.common.keypoints import Keypoints
from gtmviz.frontend.decimation import DEFAULT_MAX_MATCHES
from gtmviz.frontend.verifier.opencv_verifier import OpencvFundamentalVerifier
from gtmviz.frontend.verifier.verifier_base import FundamentalVerifierBase, VerificationResult, VerificationStatus
from gtmviz.gtm_viewer import (
    STATUS_GTM_READ_ERROR,
    STATUS_OK,
    GtmViewer,
    SequenceMismatchError,
    check_sequences,
)
from gtmviz.loader.gtm_reader import GtmReader, GtmReadError, write_gtm_file
from gtmviz.utils.viz import DisplayBase, MatchRendererBase

# Images are never written to disk in these tests, so every pair is rendered on blank canvases.
LEFT_FNAMES = [f"left/img_{k}.png" for k in range(5)]
RIGHT_FNAMES = [f"right/img_{k}.png" for k in range(5)]
GTM_FNAMES = [f"gtm/img_{k}_inlRat950FAST.gtm" for k in range(5)]


def get_synthetic_record(num_matches: int, num_true_positives: Optional[int] = None) -> GtmRecord:
    """Record whose matches pair up keypoint k of both images, projected from a general scene."""
    keypoints_left, keypoints_right, _ = sampling_utils.simulate_two_view_scene(num_matches)
    return GtmRecord(
        match_indices=np.tile(np.arange(num_matches).reshape(-1, 1), (1, 2)),
        keypoints_left=keypoints_left,
        keypoints_right=keypoints_right,
        inlier_ratio_left=0.95,
        inlier_ratio_right=0.95,
        inlier_ratio_mean=0.95,
        num_true_positives=num_matches if num_true_positives is None else num_true_positives,
        num_negatives_left=2,
        num_negatives_right=3,
        match_threshold=4.2,
    )


class TestGtmViewer(unittest.TestCase):
    """Unit tests for GtmViewer."""

    def setUp(self):
        super().setUp()
        self.reader = MagicMock(spec=GtmReader)
        self.reader.read.return_value = get_synthetic_record(20)
        self.verifier = MagicMock(spec=FundamentalVerifierBase)
        self.verifier.verify.return_value = VerificationResult(
            status=VerificationStatus.INAPPLICABLE, num_correspondences=0
        )
        self.renderer = MagicMock(spec=MatchRendererBase)
        self.renderer.render.return_value = Image(np.zeros((4, 4, 3), dtype=np.uint8))
        self.display = MagicMock(spec=DisplayBase)

    def get_viewer(self, **kwargs) -> GtmViewer:
        return GtmViewer(self.reader, self.verifier, self.renderer, self.display, **kwargs)

    def test_sequence_mismatch_reads_nothing(self):
        """3 left and 2 right images are rejected before any GTM file is read."""
        viewer = self.get_viewer()

        with self.assertRaises(SequenceMismatchError):
            viewer.run(LEFT_FNAMES[:3], RIGHT_FNAMES[:2], GTM_FNAMES[:3])

        self.reader.read.assert_not_called()
        self.display.show.assert_not_called()

    def test_gtm_count_mismatch(self):
        with self.assertRaises(SequenceMismatchError):
            self.get_viewer().run(LEFT_FNAMES, RIGHT_FNAMES, GTM_FNAMES[:4])
        self.reader.read.assert_not_called()

    def test_empty_sequences(self):
        with self.assertRaises(SequenceMismatchError):
            check_sequences([], [], [])
        with self.assertRaises(SequenceMismatchError):
            check_sequences(LEFT_FNAMES, RIGHT_FNAMES, [])

    def test_all_pairs_shown(self):
        status = self.get_viewer().run(LEFT_FNAMES, RIGHT_FNAMES, GTM_FNAMES)

        self.assertEqual(status, STATUS_OK)
        self.assertEqual(self.reader.read.call_count, 5)
        self.assertEqual(self.display.show.call_count, 5)
        # pairs are processed in order.
        self.assertEqual([c.args[0] for c in self.reader.read.call_args_list], GTM_FNAMES)
        self.assertEqual(self.display.show.call_args_list[0].args[1], "img_0_inlRat950FAST.gtm")

    def test_read_error_skips_pair_and_continues(self):
        """A GTM file which cannot be read is skipped; the remaining pairs are shown."""

        def read(gtm_fname: str) -> GtmRecord:
            if gtm_fname == GTM_FNAMES[2]:
                raise GtmReadError("corrupt file")
            return get_synthetic_record(20)

        self.reader.read.side_effect = read

        with self.assertLogs("gtmviz", level="ERROR") as logs:
            status = self.get_viewer().run(LEFT_FNAMES, RIGHT_FNAMES, GTM_FNAMES)

        self.assertEqual(status, STATUS_GTM_READ_ERROR)
        self.assertEqual(self.reader.read.call_count, 5)
        self.assertEqual(self.display.show.call_count, 4)
        self.assertTrue(any("Error while reading GTM file" in line for line in logs.output))

    def test_garbage_gtm_file_on_disk_is_skipped(self):
        """A GTM file OpenCV cannot parse is skipped like any other unreadable file."""
        with tempfile.TemporaryDirectory() as tempdir:
            gtm_fnames = [os.path.join(tempdir, f"img_{k}_inlRat950FAST.gtm") for k in range(5)]
            for k, gtm_fname in enumerate(gtm_fnames):
                if k == 3:
                    with open(gtm_fname, "w") as f:
                        f.write("garbage")
                else:
                    write_gtm_file(gtm_fname, get_synthetic_record(20))
            viewer = GtmViewer(GtmReader(), self.verifier, self.renderer, self.display)

            with self.assertLogs("gtmviz", level="ERROR") as logs:
                status = viewer.run(LEFT_FNAMES, RIGHT_FNAMES, gtm_fnames)

        self.assertEqual(status, STATUS_GTM_READ_ERROR)
        self.assertEqual(self.display.show.call_count, 4)
        self.assertEqual(self.display.show.call_args_list[3].args[1], "img_4_inlRat950FAST.gtm")
        self.assertTrue(any("img_3_inlRat950FAST.gtm" in line for line in logs.output))

    def test_record_without_matches(self):
        """A pair without matches is shown empty, with verification skipped."""
        record = get_synthetic_record(4)._replace(
            match_indices=np.zeros((0, 2), dtype=np.int64), num_true_positives=0
        )
        self.reader.read.return_value = record
        viewer = GtmViewer(self.reader, OpencvFundamentalVerifier(), self.renderer, self.display)

        with self.assertLogs("gtmviz", level="INFO") as logs:
            status = viewer.run(LEFT_FNAMES[:1], RIGHT_FNAMES[:1], GTM_FNAMES[:1])

        self.assertEqual(status, STATUS_OK)
        self.assertTrue(any("inapplicable" in line for line in logs.output))
        self.display.show.assert_called_once()
        self.assertEqual(self.renderer.render.call_args.args[5].shape, (0,))

    def test_cap_defaults_to_true_positives(self):
        """By default all true positives are displayed."""
        self.reader.read.return_value = get_synthetic_record(30, num_true_positives=10)

        self.get_viewer().run(LEFT_FNAMES[:1], RIGHT_FNAMES[:1], GTM_FNAMES[:1])

        mask = self.renderer.render.call_args.args[5]
        self.assertEqual(mask.shape, (30,))
        self.assertEqual(mask.sum(), 10)
        uv_left, uv_right = self.verifier.verify.call_args.args
        self.assertEqual(uv_left.shape, (10, 2))
        self.assertEqual(uv_right.shape, (10, 2))

    def test_cap_override(self):
        self.reader.read.return_value = get_synthetic_record(30, num_true_positives=10)

        self.get_viewer(max_matches=4).run(LEFT_FNAMES[:1], RIGHT_FNAMES[:1], GTM_FNAMES[:1])

        self.assertEqual(self.renderer.render.call_args.args[5].sum(), 4)

    def test_cap_without_true_positives(self):
        self.reader.read.return_value = get_synthetic_record(120, num_true_positives=0)

        self.get_viewer().run(LEFT_FNAMES[:1], RIGHT_FNAMES[:1], GTM_FNAMES[:1])

        self.assertEqual(self.renderer.render.call_args.args[5].sum(), DEFAULT_MAX_MATCHES)

    def test_invalid_cap(self):
        with self.assertRaises(ValueError):
            self.get_viewer(max_matches=0)

    def test_malformed_gtm_is_fatal(self):
        record = get_synthetic_record(10)
        self.reader.read.return_value = record._replace(match_indices=np.array([[0, 0], [10, 0]]))

        with self.assertRaises(MalformedGtmError):
            self.get_viewer().run(LEFT_FNAMES[:1], RIGHT_FNAMES[:1], GTM_FNAMES[:1])

        self.display.show.assert_not_called()

    def test_verification_with_too_few_matches_is_logged(self):
        """With fewer than 8 displayed matches, verification is skipped with a log entry."""
        self.reader.read.return_value = get_synthetic_record(5)
        viewer = GtmViewer(self.reader, OpencvFundamentalVerifier(), self.renderer, self.display)

        with self.assertLogs("gtmviz", level="INFO") as logs:
            status = viewer.run(LEFT_FNAMES[:1], RIGHT_FNAMES[:1], GTM_FNAMES[:1])

        self.assertEqual(status, STATUS_OK)
        self.assertTrue(any("inapplicable" in line for line in logs.output))
        self.display.show.assert_called_once()

    def test_image_is_passed_to_renderer(self):
        with tempfile.TemporaryDirectory() as tempdir:
            img_fpath = os.path.join(tempdir, "img_0.png")
            io_utils.save_image(Image(np.zeros((12, 16, 3), dtype=np.uint8)), img_fpath)

            self.get_viewer().run([img_fpath], RIGHT_FNAMES[:1], GTM_FNAMES[:1])

        image_left, image_right = self.renderer.render.call_args.args[:2]
        self.assertEqual(image_left.shape, (12, 16, 3))
        self.assertTrue(image_right.is_empty())

    def test_pair_tag_in_logs(self):
        self.assertEqual(logger_utils.get_pair_tag(), logger_utils.NO_PAIR_TAG)
        with logger_utils.pair_context(1, 5):
            self.assertEqual(logger_utils.get_pair_tag(), "pair 2/5")
        self.assertEqual(logger_utils.get_pair_tag(), logger_utils.NO_PAIR_TAG)

    def test_dump_and_report(self):
        """Displayed correspondences are dumped per pair, and all pairs are summarized in the report."""
        keypoints = Keypoints(coordinates=np.array([[1.0, 2.0], [3.0, 4.0]]))
        record = get_synthetic_record(2)._replace(keypoints_left=keypoints, keypoints_right=keypoints)

        def read(gtm_fname: str) -> GtmRecord:
            if gtm_fname == GTM_FNAMES[1]:
                raise GtmReadError("corrupt file")
            return record

        self.reader.read.side_effect = read

        with tempfile.TemporaryDirectory() as tempdir:
            report_fpath = os.path.join(tempdir, "report.json")
            viewer = self.get_viewer(correspondences_dump_dir=tempdir, report_fpath=report_fpath)

            viewer.run(LEFT_FNAMES[:2], RIGHT_FNAMES[:2], GTM_FNAMES[:2])

            dump = np.loadtxt(os.path.join(tempdir, "img_0_inlRat950FAST_TP.txt"), delimiter=",", ndmin=2)
            self.assertFalse(os.path.exists(os.path.join(tempdir, "img_1_inlRat950FAST_TP.txt")))
            report = io_utils.read_json_file(report_fpath)

        np.testing.assert_allclose(dump, np.array([[1.0, 2.0, 1.0, 2.0], [3.0, 4.0, 3.0, 4.0]]))
        self.assertEqual(len(report), 2)
        self.assertEqual(report[0]["gtm_file"], GTM_FNAMES[0])
        self.assertIsNone(report[0]["gtm_read_error"])
        self.assertEqual(report[0]["num_matches"], 2)
        self.assertEqual(report[0]["num_displayed_matches"], 2)
        self.assertEqual(report[0]["num_true_positives"], 2)
        self.assertEqual(report[0]["verification_status"], "INAPPLICABLE")
        self.assertEqual(report[1]["gtm_read_error"], "corrupt file")


if __name__ == "__main__":
    unittest.main()
