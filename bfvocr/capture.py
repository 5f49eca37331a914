"""
Screen capture for live extraction.

Uses ``mss`` to grab a monitor as a BGR numpy array that can be passed
straight to the extraction service.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

import cv2
import mss
import numpy as np
from mss.exception import ScreenShotError

logger = logging.getLogger(__name__)


def capture_screen(monitor: int = 1) -> np.ndarray:
    """
    Capture a monitor as a BGR numpy array.

    Args:
        monitor: mss monitor index (0 is the union of all monitors, 1 the primary one)

    Returns:
        Array of shape (height, width, 3)

    Raises:
        RuntimeError: If the monitor does not exist or capture fails
    """
    # Opening the display can fail too, e.g. when $DISPLAY is unset
    try:
        with mss.MSS() as sct:
            if monitor < 0 or monitor >= len(sct.monitors):
                raise RuntimeError(
                    f"Monitor {monitor} not available; found {len(sct.monitors) - 1} monitor(s)"
                )
            screenshot = sct.grab(sct.monitors[monitor])
    except ScreenShotError as e:
        raise RuntimeError(f"Screen capture failed: {e}") from e

    # mss returns BGRA; drop alpha channel for OpenCV-compatible BGR.
    frame = np.ascontiguousarray(np.array(screenshot)[:, :, :3])
    logger.debug(f"Captured frame: shape={frame.shape}")
    return frame


def save_screenshot(frame: np.ndarray, directory: Union[str, Path], label: str = "screen") -> Path:
    """Write a captured frame as a UTC-timestamped PNG and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    filepath = directory / f"{timestamp}_{label}.png"

    if not cv2.imwrite(str(filepath), frame):
        raise RuntimeError(f"Failed to write screenshot: {filepath}")
    logger.info(f"Screenshot saved: {filepath}")
    return filepath
