"""Shows the ground truth matches of a sequence of image pairs, one pair at a time.

For every pair, the GTM file is read, its statistics are logged, the matches are decimated to a displayable subset,
the subset is checked for geometric consistency with a fundamental matrix estimate, and an overlay of the subset is
rendered and shown.

Authors: gtmviz developers
"""
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

import gtmviz.frontend.decimation as decimation
import gtmviz.utils.correspondence as correspondence_utils
import gtmviz.utils.io as io_utils
import gtmviz.utils.logger as logger_utils
from gtmviz.common.gtm_record import GtmRecord
from gtmviz.common.image import Image
from gtmviz.frontend.verifier.verifier_base import FundamentalVerifierBase, VerificationResult
from gtmviz.loader.gtm_reader import GtmReader, GtmReadError
from gtmviz.utils.viz import DisplayBase, MatchRendererBase

STATUS_OK = 0
STATUS_GTM_READ_ERROR = -1

logger = logger_utils.get_logger()


class SequenceMismatchError(RuntimeError):
    """Raised when the image and GTM file sequences cannot be paired up."""


def check_sequences(
    image_fnames_left: Sequence[str], image_fnames_right: Sequence[str], gtm_fnames: Sequence[str]
) -> None:
    """Checks that the image pairs and GTM files can be paired up by position.

    Raises:
        SequenceMismatchError: if any sequence is empty, or the sequences differ in length.
    """
    if len(image_fnames_left) == 0 or len(image_fnames_right) == 0:
        raise SequenceMismatchError("Could not find images: the left or right image sequence is empty.")
    if len(image_fnames_left) != len(image_fnames_right):
        raise SequenceMismatchError(
            f"Got {len(image_fnames_left)} left and {len(image_fnames_right)} right images, counts must match."
        )
    if len(gtm_fnames) == 0:
        raise SequenceMismatchError("Could not find GTM files: the GTM sequence is empty.")
    if len(gtm_fnames) != len(image_fnames_left):
        raise SequenceMismatchError(
            f"Got {len(gtm_fnames)} GTM files for {len(image_fnames_left)} image pairs, counts must match."
        )


class GtmViewer:
    """Drives reading, decimation, verification and rendering of the GTMs of a sequence of image pairs."""

    def __init__(
        self,
        reader: GtmReader,
        verifier: FundamentalVerifierBase,
        renderer: MatchRendererBase,
        display: DisplayBase,
        max_matches: Optional[int] = None,
        correspondences_dump_dir: Optional[str] = None,
        report_fpath: Optional[str] = None,
    ) -> None:
        """Initializes the viewer.

        Args:
            reader: parser for GTM files.
            verifier: fundamental matrix verifier, run on the displayed subset of matches.
            renderer: draws the displayed subset of matches.
            display: shows the rendered overlays.
            max_matches: fixed cap on the number of displayed matches. If None, the number of true positives reported
                by each GTM file is used as cap.
            correspondences_dump_dir: optional directory to write the coordinates of the displayed matches to.
            report_fpath: optional path of a JSON report with per-pair statistics and verification results.
        """
        if max_matches is not None and max_matches < 1:
            raise ValueError(f"max_matches must be positive, got {max_matches}.")

        self._reader = reader
        self._verifier = verifier
        self._renderer = renderer
        self._display = display
        self._max_matches = max_matches
        self._correspondences_dump_dir = correspondences_dump_dir
        self._report_fpath = report_fpath

    def get_display_cap(self, record: GtmRecord) -> int:
        """Returns the cap on the number of displayed matches for a record.

        By default all true positives are shown. Records reporting no true positives fall back to the default cap.
        """
        if self._max_matches is not None:
            return self._max_matches
        if record.num_true_positives < 1:
            logger.warning(
                "GTM reports %d true positives, displaying at most %d matches.",
                record.num_true_positives,
                decimation.DEFAULT_MAX_MATCHES,
            )
            return decimation.DEFAULT_MAX_MATCHES
        return record.num_true_positives

    def run(
        self, image_fnames_left: Sequence[str], image_fnames_right: Sequence[str], gtm_fnames: Sequence[str]
    ) -> int:
        """Processes all image pairs in order.

        A GTM file which cannot be read is logged and its pair skipped; the run continues with the next pair.

        Args:
            image_fnames_left: paths of the left/first images.
            image_fnames_right: paths of the right/second images, index-aligned with the left ones.
            gtm_fnames: paths of the GTM files, index-aligned with the image pairs.

        Returns:
            STATUS_OK if every GTM file was read, STATUS_GTM_READ_ERROR otherwise.

        Raises:
            SequenceMismatchError: if the sequences cannot be paired up. Nothing is read in this case.
            MalformedGtmError: if a GTM file holds matches referring to missing keypoints.
        """
        check_sequences(image_fnames_left, image_fnames_right, gtm_fnames)

        status = STATUS_OK
        report: List[Dict[str, Any]] = []
        num_pairs = len(gtm_fnames)
        for k in range(num_pairs):
            with logger_utils.pair_context(k, num_pairs):
                pair_report = self.process_pair(image_fnames_left[k], image_fnames_right[k], gtm_fnames[k])
            if pair_report["gtm_read_error"] is not None:
                status = STATUS_GTM_READ_ERROR
            report.append(pair_report)

        num_failed = sum(pair_report["gtm_read_error"] is not None for pair_report in report)
        logger.info(
            "Showed %d of %d image pairs, %d GTM files could not be read.",
            num_pairs - num_failed,
            num_pairs,
            num_failed,
        )

        if self._report_fpath is not None:
            io_utils.save_json_file(self._report_fpath, report)
            logger.info("Saved report to %s", self._report_fpath)

        return status

    def process_pair(self, image_fname_left: str, image_fname_right: str, gtm_fname: str) -> Dict[str, Any]:
        """Reads, verifies and shows the GTM of one image pair.

        Args:
            image_fname_left: path of the left/first image.
            image_fname_right: path of the right/second image.
            gtm_fname: path of the GTM file of the pair.

        Returns:
            Report entry for the pair.
        """
        pair_report: Dict[str, Any] = {
            "image_left": image_fname_left,
            "image_right": image_fname_right,
            "gtm_file": gtm_fname,
            "gtm_read_error": None,
        }

        image_left = self._load_image(image_fname_left)
        image_right = self._load_image(image_fname_right)

        try:
            record = self._reader.read(gtm_fname)
        except GtmReadError as e:
            logger.error("Error while reading GTM file %s: %s", gtm_fname, e)
            pair_report["gtm_read_error"] = str(e)
            return pair_report

        self._log_statistics(gtm_fname, record)
        pair_report.update(record.get_statistics())

        mask, _ = decimation.decimate_match_indices(record.match_indices, self.get_display_cap(record))
        uv_left, uv_right = correspondence_utils.extract_correspondence_coordinates(
            record.keypoints_left, record.keypoints_right, record.match_indices, mask
        )
        logger.info("Displaying %d of %d matches.", uv_left.shape[0], record.num_matches)
        pair_report["num_matches"] = record.num_matches
        pair_report["num_displayed_matches"] = int(uv_left.shape[0])

        if self._correspondences_dump_dir is not None:
            dump_fpath = os.path.join(self._correspondences_dump_dir, f"{Path(gtm_fname).stem}_TP.txt")
            io_utils.save_correspondences_txt(dump_fpath, uv_left, uv_right)

        verification_result = self._verifier.verify(uv_left, uv_right)
        pair_report.update(_summarize_verification(verification_result))

        overlay = self._renderer.render(
            image_left,
            image_right,
            record.keypoints_left,
            record.keypoints_right,
            record.match_indices,
            mask,
        )
        self._display.show(overlay, Path(gtm_fname).name)

        return pair_report

    def _load_image(self, image_fname: str) -> Image:
        """Loads an image; an image which cannot be decoded is replaced with an empty one."""
        try:
            return io_utils.load_image(image_fname)
        except OSError as e:
            logger.warning("Could not load image %s, the overlay will be blank: %s", image_fname, e)
            return Image(np.zeros((0, 0, 3), dtype=np.uint8), Path(image_fname).name)

    def _log_statistics(self, gtm_fname: str, record: GtmRecord) -> None:
        logger.info("Successfully read GTM file %s", gtm_fname)
        logger.info("Inlier ratio in first/left image: %s", record.inlier_ratio_left)
        logger.info("Inlier ratio in second/right image: %s", record.inlier_ratio_right)
        logger.info("Mean inlier ratio of both images: %s", record.inlier_ratio_mean)
        logger.info("Number of true positive matches: %d", record.num_true_positives)
        logger.info("Number of left negatives (having no corresponding right match): %d", record.num_negatives_left)
        logger.info("Number of right negatives (having no corresponding left match): %d", record.num_negatives_right)
        logger.info("Threshold used to generate GTM: %s", record.match_threshold)


def _summarize_verification(result: VerificationResult) -> Dict[str, Any]:
    return {
        "verification_status": result.status.value,
        "i2Fi1": None if result.i2Fi1 is None else result.i2Fi1.tolist(),
        "mean_sampson_distance": result.mean_sampson_distance,
    }
