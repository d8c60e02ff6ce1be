"""Enumerates image pairs and their GTM files on disk.

Images are selected by a pattern `[folder/][prefix][*][postfix]` relative to the image path, e.g. `left/img_*.png`,
`*_cam0.png`, `img_` or `left/`. Text before `*` is a prefix and text after it a postfix; a pattern without `*` is a
prefix. An empty pattern, or one ending in `/`, selects every image of the folder.

Authors: gtmviz developers
"""

import os
import re
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple

IMG_EXTENSIONS = ("png", "jpg", "jpeg", "bmp", "tif", "tiff", "ppm", "pgm")

# e.g. "inlRat950FAST.gtm" -> inlier ratio tag "950", keypoint type "FAST".
GTM_POSTFIX_REGEX = re.compile(r"inlRat(?P<inlier_ratio>\d+)(?P<keypoint_type>[A-Za-z0-9]+?)\.gtm$")


class SequenceLoadError(RuntimeError):
    """Raised when image or GTM file sequences cannot be found."""


class FilePattern(NamedTuple):
    """Components of a file pattern `[folder/][prefix][*][postfix]`."""

    folder: str
    prefix: str
    postfix: str


def parse_file_pattern(pattern: Optional[str]) -> FilePattern:
    """Splits a file pattern into its subfolder, prefix and postfix.

    Args:
        pattern: pattern such as `folder/pre_*post`, `*post`, `pre_` or `folder/`.

    Returns:
        Parsed pattern.
    """
    if not pattern:
        return FilePattern(folder="", prefix="", postfix="")

    folder, _, name_pattern = pattern.replace("\\", "/").rpartition("/")
    prefix, _, postfix = name_pattern.partition("*")
    return FilePattern(folder=folder, prefix=prefix, postfix=postfix)


def _sort_key(file_name: str, pattern: FilePattern) -> Tuple[int, int, str]:
    """Orders files by the first number found in the variable part of their name, then by name."""
    variable_part = file_name[len(pattern.prefix) : len(file_name) - len(pattern.postfix)]
    number_match = re.search(r"\d+", variable_part)
    if number_match is None:
        return (1, 0, file_name)
    return (0, int(number_match.group()), file_name)


def find_files(
    base_path: str, pattern: Optional[str], extensions: Optional[Tuple[str, ...]] = IMG_EXTENSIONS
) -> List[str]:
    """Lists the files matching a pattern, in sequence order.

    Args:
        base_path: directory the pattern is relative to.
        pattern: file pattern, see `parse_file_pattern`.
        extensions: allowed file extensions (case-insensitive), or None to allow any.

    Returns:
        Paths of matching files, sorted by their sequence number.

    Raises:
        SequenceLoadError: if the directory does not exist.
    """
    file_pattern = parse_file_pattern(pattern)
    search_dir = os.path.join(base_path, file_pattern.folder)
    if not os.path.isdir(search_dir):
        raise SequenceLoadError(f"Directory {search_dir} does not exist.")

    file_names = []
    for file_name in os.listdir(search_dir):
        if not os.path.isfile(os.path.join(search_dir, file_name)):
            continue
        if extensions is not None and Path(file_name).suffix.lower().lstrip(".") not in extensions:
            continue
        if len(file_name) < len(file_pattern.prefix) + len(file_pattern.postfix):
            continue
        if file_name.startswith(file_pattern.prefix) and file_name.endswith(file_pattern.postfix):
            file_names.append(file_name)

    file_names.sort(key=lambda name: _sort_key(name, file_pattern))
    return [os.path.join(search_dir, file_name) for file_name in file_names]


def load_image_stereo_sequence(
    img_path: str, left_pattern: Optional[str], right_pattern: Optional[str] = None
) -> Tuple[List[str], List[str]]:
    """Lists corresponding left and right image files.

    For stereo images, left and right images are selected by their own pattern and paired by position. If no right
    pattern is given (or it equals the left one), the images are consecutive frames and each frame is paired with
    the next one.

    Args:
        img_path: directory holding the images.
        left_pattern: pattern of the left/first images.
        right_pattern: pattern of the right/second images; empty for consecutive images.

    Returns:
        Paths of the left images.
        Paths of the right images, index-aligned with the left ones.

    Raises:
        SequenceLoadError: if no images are found, or the numbers of left and right images differ.
    """
    left_fpaths = find_files(img_path, left_pattern)
    if not right_pattern or right_pattern == left_pattern:
        if len(left_fpaths) < 2:
            raise SequenceLoadError(f"Found {len(left_fpaths)} images in {img_path}, at least 2 are required.")
        return left_fpaths[:-1], left_fpaths[1:]

    right_fpaths = find_files(img_path, right_pattern)
    if len(left_fpaths) == 0 or len(right_fpaths) == 0:
        raise SequenceLoadError(f"Could not find left and right images in {img_path}.")
    if len(left_fpaths) != len(right_fpaths):
        raise SequenceLoadError(
            f"Found {len(left_fpaths)} left and {len(right_fpaths)} right images in {img_path}, counts must match."
        )

    return left_fpaths, right_fpaths


def load_gtm_sequence(gtm_path: str, gtm_postfix: str) -> List[str]:
    """Lists the GTM files with the given postfix.

    Args:
        gtm_path: directory holding the GTM files.
        gtm_postfix: postfix of the GTM files, optionally with a subfolder and leading `*`, e.g.
            `inlRat950FAST.gtm` or `folder/*inlRat950FAST.gtm`.

    Returns:
        Paths of the GTM files, in sequence order.

    Raises:
        SequenceLoadError: if no GTM file is found.
    """
    file_pattern = parse_file_pattern(gtm_postfix)
    if "*" not in gtm_postfix:
        # A bare postfix, e.g. "inlRat950FAST.gtm".
        gtm_postfix = os.path.join(file_pattern.folder, "*" + file_pattern.prefix)

    gtm_fpaths = find_files(gtm_path, gtm_postfix, extensions=None)
    if len(gtm_fpaths) == 0:
        raise SequenceLoadError(f"Could not find GTM files matching {gtm_postfix} in {gtm_path}.")
    return gtm_fpaths


def parse_gtm_postfix(gtm_postfix: str) -> Tuple[Optional[float], Optional[str]]:
    """Decodes the intended inlier ratio and keypoint type from a GTM postfix.

    The inlier ratio tag is 10 times the inlier ratio in percent, e.g. `inlRat950FAST.gtm` -> (0.95, "FAST").

    Args:
        gtm_postfix: postfix of the GTM files.

    Returns:
        Inlier ratio, or None if the postfix carries no tag.
        Keypoint type, or None if the postfix carries no tag.
    """
    tag_match = GTM_POSTFIX_REGEX.search(gtm_postfix)
    if tag_match is None:
        return None, None

    return int(tag_match.group("inlier_ratio")) / 1000.0, tag_match.group("keypoint_type")
