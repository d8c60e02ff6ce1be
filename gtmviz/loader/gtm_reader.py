"""Reader for ground truth match (GTM) files.

GTM files are OpenCV FileStorage documents (YAML or XML) holding:
- `keypL`, `keypR`: keypoints of the left and right image, 7 values each (x, y, size, angle, response, octave,
  class_id).
- `matchesGT`: ground truth matches, 4 values each (queryIdx, trainIdx, imgIdx, distance). queryIdx refers to `keypL`
  and trainIdx to `keypR`.
- `leftInlier` (optional): one flag per left keypoint.
- Scalars `inlRatioL`, `inlRatioR`, `inlRatioO`, `positivesGT`, `negativesGTl`, `negativesGTr` and `usedMatchTH`.

Sequences may be flat, nested per element, or stored as OpenCV matrices.

Authors: gtmviz developers
"""
import os
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

import gtmviz.utils.logger as logger_utils
from gtmviz.common.gtm_record import GtmRecord
from gtmviz.common.keypoints import Keypoints

NUM_VALUES_PER_KEYPOINT = 7
NUM_VALUES_PER_MATCH = 4

logger = logger_utils.get_logger()


class GtmReadError(RuntimeError):
    """Raised when a GTM file is missing or cannot be parsed."""


def _flatten_node(node: cv2.FileNode, values: List[float]) -> None:
    """Appends all numbers of a (possibly nested) FileStorage node to `values`."""
    if node.isSeq():
        for i in range(node.size()):
            _flatten_node(node.at(i), values)
    elif node.isInt() or node.isReal():
        values.append(node.real())
    elif node.isMap():
        mat = node.mat()
        if mat is not None:
            values.extend(np.asarray(mat, dtype=np.float64).ravel().tolist())
    else:
        raise GtmReadError(f"Unexpected non-numeric entry in node '{node.name()}'.")


def _read_array(fs: cv2.FileStorage, key: str, num_values_per_row: int, required: bool = True) -> Optional[np.ndarray]:
    """Reads a sequence node as an array of shape (N, num_values_per_row).

    An entry which is present but holds no values (an empty XML element is read back as a "none" node) is an empty
    array of shape (0, num_values_per_row).
    """
    if key not in fs.root().keys():
        if required:
            raise GtmReadError(f"Missing entry '{key}'.")
        return None

    node = fs.getNode(key)
    if node.empty() or node.isNone():
        return np.zeros((0, num_values_per_row), dtype=np.float64)

    values: List[float] = []
    _flatten_node(node, values)
    if len(values) % num_values_per_row != 0:
        raise GtmReadError(f"Entry '{key}' holds {len(values)} values, expected a multiple of {num_values_per_row}.")

    return np.array(values, dtype=np.float64).reshape(-1, num_values_per_row)


def _read_scalar(fs: cv2.FileStorage, key: str) -> float:
    node = fs.getNode(key)
    if node.empty() or not (node.isReal() or node.isInt()):
        raise GtmReadError(f"Missing or non-numeric entry '{key}'.")
    return node.real()


def _read_count(fs: cv2.FileStorage, key: str) -> int:
    value = _read_scalar(fs, key)
    if not np.isfinite(value):
        raise GtmReadError(f"Entry '{key}' must be a finite count, got {value}.")
    return int(round(value))


def _to_keypoints(keypoint_rows: np.ndarray) -> Keypoints:
    return Keypoints(
        coordinates=keypoint_rows[:, :2],
        scales=keypoint_rows[:, 2],
        responses=keypoint_rows[:, 4],
    )


class GtmReader:
    """Parses GTM files into `GtmRecord`s."""

    def read(self, gtm_fpath: str) -> GtmRecord:
        """Reads a GTM file.

        Args:
            gtm_fpath: path of the GTM file.

        Returns:
            Parsed record. Matches are not checked against the keypoints here.

        Raises:
            GtmReadError: if the file is missing, cannot be parsed, or lacks a required entry.
        """
        if not os.path.isfile(gtm_fpath):
            raise GtmReadError(f"GTM file {gtm_fpath} does not exist.")

        # Parser errors of the constructor surface as SystemError, not cv2.error.
        try:
            fs = cv2.FileStorage(gtm_fpath, cv2.FILE_STORAGE_READ | cv2.FILE_STORAGE_FORMAT_AUTO)
        except (cv2.error, SystemError) as e:
            raise GtmReadError(f"Could not parse GTM file {gtm_fpath}: {e}") from e

        if not fs.isOpened():
            raise GtmReadError(f"Could not open GTM file {gtm_fpath}.")

        try:
            keypoints_left = _read_array(fs, "keypL", NUM_VALUES_PER_KEYPOINT)
            keypoints_right = _read_array(fs, "keypR", NUM_VALUES_PER_KEYPOINT)
            matches = _read_array(fs, "matchesGT", NUM_VALUES_PER_MATCH)
            left_inlier = _read_array(fs, "leftInlier", 1, required=False)

            record = GtmRecord(
                match_indices=matches[:, :2].astype(np.int64),
                keypoints_left=_to_keypoints(keypoints_left),
                keypoints_right=_to_keypoints(keypoints_right),
                inlier_ratio_left=_read_scalar(fs, "inlRatioL"),
                inlier_ratio_right=_read_scalar(fs, "inlRatioR"),
                inlier_ratio_mean=_read_scalar(fs, "inlRatioO"),
                num_true_positives=_read_count(fs, "positivesGT"),
                num_negatives_left=_read_count(fs, "negativesGTl"),
                num_negatives_right=_read_count(fs, "negativesGTr"),
                match_threshold=_read_scalar(fs, "usedMatchTH"),
                left_inlier_mask=None if left_inlier is None else left_inlier[:, 0].astype(bool),
                file_name=Path(gtm_fpath).name,
            )
        except (cv2.error, SystemError) as e:
            raise GtmReadError(f"Could not parse GTM file {gtm_fpath}: {e}") from e
        finally:
            fs.release()

        logger.debug(
            "Read %d matches, %d left and %d right keypoints from %s",
            record.num_matches,
            len(record.keypoints_left),
            len(record.keypoints_right),
            gtm_fpath,
        )
        return record


def write_gtm_file(gtm_fpath: str, record: GtmRecord) -> None:
    """Writes a record as a YAML GTM file, with sequences stored as OpenCV matrices.

    Keypoint angles, octaves and class ids are not stored in `GtmRecord` and are written as -1, 0 and -1.

    Args:
        gtm_fpath: path of the file to create.
        record: record to write.
    """

    def keypoint_rows(keypoints: Keypoints) -> np.ndarray:
        num_keypoints = len(keypoints)
        rows = np.zeros((num_keypoints, NUM_VALUES_PER_KEYPOINT), dtype=np.float64)
        rows[:, :2] = keypoints.coordinates
        rows[:, 2] = 2.0 if keypoints.scales is None else keypoints.scales
        rows[:, 3] = -1.0
        rows[:, 4] = 0.0 if keypoints.responses is None else keypoints.responses
        rows[:, 6] = -1.0
        return rows

    match_rows = np.zeros((record.num_matches, NUM_VALUES_PER_MATCH), dtype=np.float64)
    match_rows[:, :2] = record.match_indices.reshape(-1, 2)
    match_rows[:, 2] = -1.0

    os.makedirs(Path(gtm_fpath).parent, exist_ok=True)
    # ".gtm" is not a recognized extension, so the format is given explicitly.
    fs = cv2.FileStorage(gtm_fpath, cv2.FILE_STORAGE_WRITE | cv2.FILE_STORAGE_FORMAT_YAML)
    try:
        fs.write("keypL", keypoint_rows(record.keypoints_left))
        fs.write("keypR", keypoint_rows(record.keypoints_right))
        fs.write("matchesGT", match_rows)
        if record.left_inlier_mask is not None:
            fs.write("leftInlier", record.left_inlier_mask.astype(np.uint8).reshape(-1, 1))
        fs.write("inlRatioL", float(record.inlier_ratio_left))
        fs.write("inlRatioR", float(record.inlier_ratio_right))
        fs.write("inlRatioO", float(record.inlier_ratio_mean))
        fs.write("positivesGT", float(record.num_true_positives))
        fs.write("negativesGTl", float(record.num_negatives_left))
        fs.write("negativesGTr", float(record.num_negatives_right))
        fs.write("usedMatchTH", float(record.match_threshold))
    finally:
        fs.release()
