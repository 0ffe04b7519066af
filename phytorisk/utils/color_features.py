"""
Pixel-level color and texture helpers for leaf photo analysis.

Provides utilities for:
- Normalizing decoded pixel buffers to RGB
- Bounded downsampling
- Vectorized RGB -> HSV conversion
- Hue/saturation/value category counting with an edge band
- Laplacian detail (sharpness) variance
"""
from dataclasses import dataclass
import logging

import numpy as np
from PIL import Image
from scipy import ndimage

from phytorisk.utils.numeric import round_half_up

logger = logging.getLogger(__name__)

# Rec. 709 luma coefficients
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])

LAPLACIAN_KERNEL = np.array(
    [
        [0.0, -1.0, 0.0],
        [-1.0, 4.0, -1.0],
        [0.0, -1.0, 0.0],
    ]
)


@dataclass
class PixelCounts:
    """Per-category pixel counters collected in one classification pass."""
    total: int = 0
    leaf_like: int = 0
    green: int = 0
    yellow: int = 0
    brown: int = 0
    dark_spot: int = 0
    low_saturation: int = 0
    edge_total: int = 0
    edge_brown: int = 0

    def ratio(self, count: int) -> float:
        return count / max(1, self.total)

    @property
    def edge_burn_ratio(self) -> float:
        return self.edge_brown / max(1, self.edge_total)


def as_rgb_array(pixels) -> np.ndarray:
    """
    Coerce a decoded pixel buffer into an ``(H, W, 3)`` uint8 array.

    Grayscale buffers are replicated across channels and an alpha channel,
    if present, is dropped.

    Args:
        pixels: Array-like pixel buffer, ``(H, W)``, ``(H, W, 3)`` or ``(H, W, 4)``

    Returns:
        RGB array of dtype uint8

    Raises:
        ValueError: If the buffer is not numeric or has an unsupported shape
    """
    array = np.asarray(pixels)

    if array.dtype.kind not in "biuf":
        raise ValueError(f"Unsupported pixel buffer dtype: {array.dtype}")

    if array.ndim == 2:
        array = np.stack([array] * 3, axis=-1)
    elif array.ndim == 3 and array.shape[2] >= 3:
        array = array[:, :, :3]
    else:
        raise ValueError(f"Unsupported pixel buffer shape: {array.shape}")

    if array.dtype != np.uint8:
        array = np.clip(np.nan_to_num(array), 0, 255).astype(np.uint8)

    return np.ascontiguousarray(array)


def downsample(rgb: np.ndarray, max_side: int) -> np.ndarray:
    """
    Resize so the longer side is at most ``max_side``, preserving aspect ratio.

    Images already within the bound are returned unchanged. Resampling is
    bilinear, so identical input always yields identical output.

    Args:
        rgb: ``(H, W, 3)`` uint8 array
        max_side: Upper bound for the longer side in pixels

    Returns:
        Downsampled ``(h, w, 3)`` uint8 array
    """
    height, width = rgb.shape[:2]
    scale = min(1.0, max_side / max(width, height))
    if scale >= 1.0:
        return rgb

    new_width = max(1, round_half_up(width * scale))
    new_height = max(1, round_half_up(height * scale))

    resized = Image.fromarray(rgb).resize(
        (new_width, new_height), Image.Resampling.BILINEAR
    )
    logger.debug(f"Downsampled {width}x{height} -> {new_width}x{new_height}")
    return np.asarray(resized)


def rgb_to_hsv(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert an RGB uint8 array to hue (degrees), saturation and value.

    Args:
        rgb: ``(H, W, 3)`` uint8 array

    Returns:
        Tuple of ``(hue, saturation, value)`` float arrays; hue in [0, 360),
        saturation and value in [0, 1]
    """
    scaled = rgb.astype(np.float64) / 255.0
    r, g, b = scaled[..., 0], scaled[..., 1], scaled[..., 2]

    max_c = scaled.max(axis=-1)
    min_c = scaled.min(axis=-1)
    delta = max_c - min_c
    safe_delta = np.where(delta == 0, 1.0, delta)

    hue_r = np.mod((g - b) / safe_delta, 6.0)
    hue_g = (b - r) / safe_delta + 2.0
    hue_b = (r - g) / safe_delta + 4.0

    hue = np.where(max_c == r, hue_r, np.where(max_c == g, hue_g, hue_b)) * 60.0
    hue = np.where(delta == 0, 0.0, hue)
    hue = np.where(hue < 0, hue + 360.0, hue)

    safe_max = np.where(max_c == 0, 1.0, max_c)
    saturation = np.where(max_c == 0, 0.0, delta / safe_max)

    return hue, saturation, max_c


def edge_band_width(width: int, height: int, fraction: float) -> int:
    """Width in pixels of the outer ring used for edge-burn detection."""
    return max(2, round_half_up(min(width, height) * fraction))


def edge_band_mask(width: int, height: int, band: int) -> np.ndarray:
    """Boolean ``(H, W)`` mask that is True inside the outer ring of ``band`` pixels."""
    mask = np.zeros((height, width), dtype=bool)
    mask[:band, :] = True
    mask[-band:, :] = True
    mask[:, :band] = True
    mask[:, -band:] = True
    return mask


def classify_pixels(rgb: np.ndarray, edge_fraction: float = 0.10) -> PixelCounts:
    """
    Classify every pixel into overlapping color categories and count them.

    Categories (hue in degrees, saturation/value in [0, 1]):
    - leaf-like: 55 <= h <= 170, s > 0.18, v > 0.12
    - green: 70 <= h <= 160, s > 0.22, v > 0.14
    - yellow: 35 <= h < 70, s > 0.18, v > 0.18
    - brown: 0 <= h < 35, s > 0.16, v > 0.10
    - dark spot: leaf-like with v < 0.22 and s > 0.12
    - low saturation: s < 0.08

    Args:
        rgb: ``(H, W, 3)`` uint8 array
        edge_fraction: Edge band width as a fraction of the shorter side

    Returns:
        PixelCounts for the buffer
    """
    height, width = rgb.shape[:2]
    hue, sat, val = rgb_to_hsv(rgb)

    leaf_like = (hue >= 55) & (hue <= 170) & (sat > 0.18) & (val > 0.12)
    green = (hue >= 70) & (hue <= 160) & (sat > 0.22) & (val > 0.14)
    yellow = (hue >= 35) & (hue < 70) & (sat > 0.18) & (val > 0.18)
    brown = (hue >= 0) & (hue < 35) & (sat > 0.16) & (val > 0.10)
    dark_spot = leaf_like & (val < 0.22) & (sat > 0.12)
    low_saturation = sat < 0.08

    edge = edge_band_mask(width, height, edge_band_width(width, height, edge_fraction))

    return PixelCounts(
        total=width * height,
        leaf_like=int(np.count_nonzero(leaf_like)),
        green=int(np.count_nonzero(green)),
        yellow=int(np.count_nonzero(yellow)),
        brown=int(np.count_nonzero(brown)),
        dark_spot=int(np.count_nonzero(dark_spot)),
        low_saturation=int(np.count_nonzero(low_saturation)),
        edge_total=int(np.count_nonzero(edge)),
        edge_brown=int(np.count_nonzero(brown & edge)),
    )


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Grayscale intensity on the 0-255 scale."""
    return rgb.astype(np.float64) @ LUMA_WEIGHTS


def laplacian_variance(gray: np.ndarray) -> float:
    """
    Variance of the discrete Laplacian over interior pixels.

    Low values indicate blur or a textureless (synthetic) image.

    Args:
        gray: ``(H, W)`` float array

    Returns:
        ``E[lap^2] - E[lap]^2``, floored at 0; 0 when the image has no interior
    """
    height, width = gray.shape
    if height < 3 or width < 3:
        return 0.0

    lap = ndimage.convolve(gray, LAPLACIAN_KERNEL, mode="nearest")[1:-1, 1:-1]
    mean = float(lap.mean())
    mean_sq = float(np.mean(lap * lap))
    return max(0.0, mean_sq - mean * mean)
