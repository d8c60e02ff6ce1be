"""Functions to read images and write visualizations, coordinate dumps and reports.

Authors: gtmviz developers
"""
import os
from pathlib import Path
from typing import Any, Dict, List, Union

import numpy as np
import simplejson as json
from PIL import Image as PILImage

from gtmviz.common.image import Image


def load_image(img_path: str) -> Image:
    """Load the image from disk.

    Images will be converted to RGB if in a different format.

    Args:
        img_path: The path of image to load.

    Returns:
        Loaded image in RGB format.

    Raises:
        OSError: if the file is missing or cannot be decoded.
    """
    with PILImage.open(img_path) as original_image:
        original_image = original_image.convert("RGB") if original_image.mode != "RGB" else original_image
        value_array = np.asarray(original_image)

    return Image(value_array=value_array, file_name=Path(img_path).name)


def save_image(image: Image, img_path: str) -> None:
    """Saves the image to disk

    Args:
        image: RGB image.
        img_path: The path on disk to save the image to.
    """
    os.makedirs(Path(img_path).parent, exist_ok=True)
    im = PILImage.fromarray(image.value_array)
    im.save(img_path)


def save_correspondences_txt(txt_fpath: str, uv_i1: np.ndarray, uv_i2: np.ndarray) -> None:
    """Dumps index-aligned correspondence coordinates as text, one correspondence per line.

    Line format: "x_i1, y_i1, x_i2, y_i2".

    Args:
        txt_fpath: Path to file to create.
        uv_i1: coordinates in image i1, of shape Nx2.
        uv_i2: corr. coordinates in image i2, of shape Nx2.
    """
    os.makedirs(Path(txt_fpath).parent, exist_ok=True)
    with open(txt_fpath, "w") as f:
        for (x_i1, y_i1), (x_i2, y_i2) in zip(uv_i1, uv_i2):
            f.write(f"{x_i1}, {y_i1}, {x_i2}, {y_i2}\n")


def save_json_file(
    json_fpath: str,
    data: Union[Dict[Any, Any], List[Any]],
) -> None:
    """Save a Python dictionary or list to a JSON file.

    Args:
        json_fpath: Path to file to create.
        data: Python dictionary or list to be serialized.
    """
    os.makedirs(Path(json_fpath).parent, exist_ok=True)
    with open(json_fpath, "w") as f:
        # ignore_nan=True replaces any NaN with null.
        json.dump(data, f, indent=4, ignore_nan=True)


def read_json_file(fpath: Union[str, Path]) -> Any:
    """Load dictionary from JSON file.

    Args:
        fpath: Path to JSON file.

    Returns:
        Deserialized Python dictionary or list.
    """
    with open(fpath, "r") as f:
        return json.load(f)
