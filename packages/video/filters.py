"""
Filters - per-clip color and blur adjustments on RGB frames.
"""

import cv2
import numpy as np

from packages.core.types import ClipFilters


def adjust_brightness(frame: np.ndarray, amount: float) -> np.ndarray:
    """Scale pixel values by 1 + amount/100."""
    factor = 1.0 + amount / 100.0
    return cv2.convertScaleAbs(frame, alpha=factor, beta=0)


def adjust_contrast(frame: np.ndarray, amount: float) -> np.ndarray:
    """Stretch pixel values around mid-grey by 1 + amount/100."""
    factor = 1.0 + amount / 100.0
    return cv2.convertScaleAbs(frame, alpha=factor, beta=128.0 * (1.0 - factor))


def adjust_saturation(frame: np.ndarray, amount: float) -> np.ndarray:
    """Blend each pixel against its grey value by 1 + amount/100."""
    factor = 1.0 + amount / 100.0
    gray = cv2.cvtColor(cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY), cv2.COLOR_GRAY2RGB)
    return cv2.addWeighted(
        frame.astype(np.float32),
        factor,
        gray.astype(np.float32),
        1.0 - factor,
        0
    ).clip(0, 255).astype(np.uint8)


def rotate_hue(frame: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate hue by the given angle in degrees."""
    hsv = cv2.cvtColor(frame, cv2.COLOR_RGB2HSV)
    # OpenCV stores 8-bit hue as degrees / 2
    shift = int(round(degrees / 2.0)) % 180
    hsv[..., 0] = ((hsv[..., 0].astype(np.int32) + shift) % 180).astype(np.uint8)
    return cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB)


def blur(frame: np.ndarray, radius: float) -> np.ndarray:
    """Gaussian blur with the given radius in pixels."""
    if radius <= 0:
        return frame
    return cv2.GaussianBlur(frame, (0, 0), sigmaX=radius / 2.0)


def apply_filters(frame: np.ndarray, filters: ClipFilters) -> np.ndarray:
    """
    Apply a clip's color and blur filters.

    Opacity is not applied here; the compositor uses it when blending.

    Args:
        frame: RGB frame (height, width, 3), uint8
        filters: The clip's filter values

    Returns:
        Filtered frame (the input itself when nothing changes)
    """
    if filters.brightness:
        frame = adjust_brightness(frame, filters.brightness)
    if filters.contrast:
        frame = adjust_contrast(frame, filters.contrast)
    if filters.saturation:
        frame = adjust_saturation(frame, filters.saturation)
    if filters.hue:
        frame = rotate_hue(frame, filters.hue)
    if filters.blur:
        frame = blur(frame, filters.blur_radius)
    return frame
