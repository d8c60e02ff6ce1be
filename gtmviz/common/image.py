"""Class for holding an image and its original file name.

Authors: gtmviz developers
"""

from typing import NamedTuple, Optional, Tuple

import numpy as np


class Image(NamedTuple):
    """Holds the image and original image file name.

    An image which could not be decoded is represented with an empty `value_array`.
    """

    value_array: np.ndarray
    file_name: Optional[str] = None

    @property
    def height(self) -> int:
        """The height of the image (i.e. number of pixels in the vertical direction)."""
        return self.value_array.shape[0]

    @property
    def width(self) -> int:
        """The width of the image (i.e. number of pixels in the horizontal direction)."""
        return self.value_array.shape[1]

    @property
    def shape(self) -> Tuple[int, ...]:
        """The shape of the image (H, W, C)."""
        return self.value_array.shape

    def is_empty(self) -> bool:
        """Whether the image holds no pixels, e.g. because decoding failed."""
        return self.value_array.size == 0
