"""Common utilities for image manipulation.

Authors: gtmviz developers
"""

import cv2 as cv
import numpy as np

from gtmviz.common.image import Image
from gtmviz.common.keypoints import Keypoints

# Margin (in pixels) around the outermost keypoint on a blank canvas.
CANVAS_MARGIN_PX = 10


def to_rgb(image: Image) -> Image:
    """Converts a grayscale or RGBA image to RGB.

    Args:
        image: Input grayscale, RGB or RGBA image.

    Raises:
        ValueError: wrong input dimensions

    Returns:
        RGB image.
    """
    input_array = image.value_array

    if input_array.ndim == 2:
        output_array = cv.cvtColor(input_array, cv.COLOR_GRAY2RGB)
    elif input_array.shape[2] == 4:
        output_array = cv.cvtColor(input_array, cv.COLOR_RGBA2RGB)
    elif input_array.shape[2] == 3:
        output_array = input_array
    else:
        raise ValueError("Input image dimensions are wrong")

    return Image(output_array, image.file_name)


def rgb_to_bgr(image: Image) -> Image:
    """Swaps the channel order, as OpenCV's HighGUI expects BGR images."""
    return Image(cv.cvtColor(image.value_array, cv.COLOR_RGB2BGR), image.file_name)


def create_blank_canvas(keypoints: Keypoints) -> Image:
    """Creates a white RGB image large enough to hold all the keypoints.

    Used in place of images which could not be decoded, so that the matches can still be drawn.

    Args:
        keypoints: keypoints which should fall inside the canvas.

    Returns:
        Blank image.
    """
    if len(keypoints) == 0:
        height, width = CANVAS_MARGIN_PX, CANVAS_MARGIN_PX
    else:
        max_x, max_y = np.max(keypoints.coordinates, axis=0)
        width = max(int(np.ceil(max_x)), 0) + CANVAS_MARGIN_PX
        height = max(int(np.ceil(max_y)), 0) + CANVAS_MARGIN_PX

    return Image(np.full((height, width, 3), 255, dtype=np.uint8))


def resize_image(image: Image, new_height: int, new_width: int) -> Image:
    """Resize the image to given dimensions, preserving filename metadata.

    Args:
        image: image to resize.
        new_height: height of the new image.
        new_width: width of the new image.

    Returns:
        resized image.
    """
    resized_value_array = cv.resize(
        image.value_array,
        (new_width, new_height),
        interpolation=cv.INTER_AREA,
    )
    return Image(value_array=resized_value_array, file_name=image.file_name)


def resize_to_max_size(img: Image, long_edge_size: int) -> Image:
    """Downsizes the image such that its longest edge is at most long_edge_size; smaller images are kept as-is.

    Args:
        img: The input image to be resized.
        long_edge_size: The maximum size for the longest edge of the image.

    Returns:
        The resized image.
    """
    max_size = max(img.height, img.width)
    if max_size <= long_edge_size:
        return img

    ratio = float(long_edge_size) / max_size
    new_height = max(int(img.height * ratio), 1)
    new_width = max(int(img.width * ratio), 1)
    return resize_image(img, new_height, new_width)
