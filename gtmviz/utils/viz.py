"""Rendering of ground truth matches, and the surfaces the rendered overlays are shown on.

Authors: gtmviz developers
"""
import abc
import os
from pathlib import Path
from typing import Optional

import cv2 as cv
import numpy as np

import gtmviz.utils.images as image_utils
import gtmviz.utils.io as io_utils
import gtmviz.utils.logger as logger_utils
from gtmviz.common.image import Image
from gtmviz.common.keypoints import Keypoints

WINDOW_NAME = "Ground Truth Matches"

logger = logger_utils.get_logger()


class MatchRendererBase(metaclass=abc.ABCMeta):
    """Draws correspondences between two images."""

    @abc.abstractmethod
    def render(
        self,
        image_i1: Image,
        image_i2: Image,
        kps_i1: Keypoints,
        kps_i2: Keypoints,
        match_indices: np.ndarray,
        mask: Optional[np.ndarray] = None,
    ) -> Image:
        """Draws the masked correspondences between two images.

        Args:
            image_i1: first image. May be empty, if it could not be decoded.
            image_i2: second image. May be empty, if it could not be decoded.
            kps_i1: keypoints for image_i1.
            kps_i2: keypoints for image_i2.
            match_indices: all correspondences as indices of keypoints, of shape (M, 2).
            mask: optional boolean array of shape (M,) selecting the correspondences to draw. All are drawn if None.

        Returns:
            RGB image visualizing the correspondences.
        """


class OpencvMatchRenderer(MatchRendererBase):
    """Draws matches side by side with OpenCV's `drawMatches`, in random colors, without unmatched keypoints."""

    def __init__(self, max_display_size: Optional[int] = None) -> None:
        """Initializes the renderer.

        Args:
            max_display_size: optional maximum length (in pixels) of the longest edge of the rendered overlay.
        """
        self._max_display_size = max_display_size

    def render(
        self,
        image_i1: Image,
        image_i2: Image,
        kps_i1: Keypoints,
        kps_i2: Keypoints,
        match_indices: np.ndarray,
        mask: Optional[np.ndarray] = None,
    ) -> Image:
        image_i1 = image_utils.create_blank_canvas(kps_i1) if image_i1.is_empty() else image_utils.to_rgb(image_i1)
        image_i2 = image_utils.create_blank_canvas(kps_i2) if image_i2.is_empty() else image_utils.to_rgb(image_i2)

        match_indices = match_indices.reshape(-1, 2)
        matches = [cv.DMatch(int(idx_i1), int(idx_i2), 0.0) for idx_i1, idx_i2 in match_indices]
        if mask is None:
            mask = np.ones(len(matches), dtype=bool)

        result = cv.drawMatches(
            image_i1.value_array,
            kps_i1.cast_to_opencv_keypoints(),
            image_i2.value_array,
            kps_i2.cast_to_opencv_keypoints(),
            matches,
            None,
            matchesMask=np.asarray(mask, dtype=np.uint8).tolist(),
            flags=cv.DrawMatchesFlags_NOT_DRAW_SINGLE_POINTS,
        )
        overlay = Image(result)

        if self._max_display_size is not None:
            overlay = image_utils.resize_to_max_size(overlay, self._max_display_size)
        return overlay


class DisplayBase(metaclass=abc.ABCMeta):
    """Surface on which a rendered overlay is shown; returns once the overlay has been acknowledged."""

    @abc.abstractmethod
    def show(self, image: Image, name: str) -> None:
        """Shows the image.

        Args:
            image: RGB image to show.
            name: name of the shown content, e.g. the GTM file name.
        """


class WindowDisplay(DisplayBase):
    """Shows overlays in an OpenCV window and blocks until a key is pressed."""

    def __init__(self, window_name: str = WINDOW_NAME, wait_ms: int = 0) -> None:
        """Initializes the display.

        Args:
            window_name: title of the window.
            wait_ms: time to wait for a key press, in milliseconds. Waits forever if 0.
        """
        self._window_name = window_name
        self._wait_ms = wait_ms

    def show(self, image: Image, name: str) -> None:
        logger.info("Showing matches of %s, press any key to continue.", name)
        cv.imshow(self._window_name, image_utils.rgb_to_bgr(image).value_array)
        cv.waitKey(self._wait_ms)
        cv.destroyWindow(self._window_name)


class FileDisplay(DisplayBase):
    """Writes overlays as PNG files instead of showing them, for headless runs."""

    def __init__(self, save_dir: str) -> None:
        """Initializes the display.

        Args:
            save_dir: directory to write the overlays to.
        """
        self._save_dir = save_dir

    def show(self, image: Image, name: str) -> None:
        save_fpath = os.path.join(self._save_dir, f"{Path(name).stem}_matches.png")
        io_utils.save_image(image, save_fpath)
        logger.info("Saved matches of %s to %s", name, save_fpath)
