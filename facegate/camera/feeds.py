"""OpenCV-backed frame sources.

A frame source owns a daemon thread that reads frames and hands each one to
the ``on_frame`` callback. ``stop()`` joins that thread, so once it returns
no further callbacks are made.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple

import cv2

from facegate.errors import CameraError, ErrorCode
from facegate.types import Frame

LOGGER = logging.getLogger("facegate.camera")

FrameCallback = Callable[[Frame], object]


class FrameSource(Protocol):
    def start(self, on_frame: FrameCallback) -> None:
        ...

    def stop(self) -> None:
        ...


def capture_backends() -> List[Tuple[str, Optional[int]]]:
    """Capture backends to try, in order. Windows prefers DirectShow."""
    backends = {
        "Auto": getattr(cv2, "CAP_ANY", None),
        "DirectShow": getattr(cv2, "CAP_DSHOW", None),
        "Media Foundation": getattr(cv2, "CAP_MSMF", None),
        "V4L2": getattr(cv2, "CAP_V4L2", None),
    }
    if os.name == "nt":
        order = ["DirectShow", "Media Foundation", "Auto"]
    else:
        order = ["Auto", "V4L2"]

    candidates: List[Tuple[str, Optional[int]]] = []
    seen = set()
    for name in order:
        backend = backends.get(name)
        if backend in seen:
            continue
        seen.add(backend)
        candidates.append((name, backend))
    return candidates


def open_camera_capture(camera_index: int, probe_reads: int = 6) -> Tuple[cv2.VideoCapture, str]:
    attempted: List[str] = []
    for backend_name, backend in capture_backends():
        attempted.append(backend_name)
        cap = cv2.VideoCapture(camera_index) if backend is None else cv2.VideoCapture(camera_index, backend)
        if cap.isOpened():
            # Some backends report opened but never deliver frames.
            for _ in range(probe_reads):
                ok, frame = cap.read()
                if ok and frame is not None:
                    return cap, backend_name
                time.sleep(0.03)
        cap.release()

    tried = ", ".join(attempted) if attempted else "default backend"
    raise CameraError(
        ErrorCode.CAMERA_UNAVAILABLE,
        debug_message=f"unable to open camera index {camera_index}; tried backends: {tried}",
    )


class _CaptureFeed:
    """Shared read loop for camera and file feeds."""

    thread_name = "facegate-capture"

    def __init__(self) -> None:
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self.frames_delivered = 0

    def _open(self) -> cv2.VideoCapture:
        raise NotImplementedError

    def _pace(self) -> None:
        return None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, on_frame: FrameCallback) -> None:
        if self.running:
            return
        cap = self._open()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(cap, on_frame),
            name=self.thread_name,
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                LOGGER.warning("Capture thread did not exit within %.1fs", timeout)
        self._thread = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the read loop ends (end of file or stop). False on timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _loop(self, cap: cv2.VideoCapture, on_frame: FrameCallback) -> None:
        index = 0
        try:
            while not self._stop_event.is_set():
                ok, image = cap.read()
                if not ok or image is None:
                    LOGGER.info("Capture ended after %d frames", index)
                    break
                on_frame(Frame(image=image, timestamp=time.monotonic(), index=index))
                index += 1
                self.frames_delivered = index
                self._pace()
        except Exception:
            LOGGER.exception("Capture loop crashed")
        finally:
            cap.release()


class CameraFeed(_CaptureFeed):
    """Live frames from a local capture device."""

    thread_name = "facegate-camera"

    def __init__(self, camera_index: int = 0, width: Optional[int] = None, height: Optional[int] = None) -> None:
        super().__init__()
        self.camera_index = camera_index
        self.width = width
        self.height = height

    def _open(self) -> cv2.VideoCapture:
        cap, backend_name = open_camera_capture(self.camera_index)
        if self.width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(self.width))
        if self.height:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self.height))
        LOGGER.info("Opened camera %d via %s", self.camera_index, backend_name)
        return cap


class VideoFileFeed(_CaptureFeed):
    """Replays a video file at its native frame rate (or as fast as possible)."""

    thread_name = "facegate-video"

    def __init__(self, path: Path, realtime: bool = True) -> None:
        super().__init__()
        self.path = Path(path)
        self.realtime = realtime
        self.fps = 30.0
        self.frame_count = 0

    def _open(self) -> cv2.VideoCapture:
        if not self.path.exists():
            raise CameraError(ErrorCode.CAMERA_UNAVAILABLE, debug_message=f"video {self.path} does not exist")
        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            cap.release()
            raise CameraError(ErrorCode.CAMERA_UNAVAILABLE, debug_message=f"unable to open video {self.path}")
        self.fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
        self.frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        LOGGER.info("Opened video %s fps=%.2f frames=%s", self.path, self.fps, self.frame_count or "unknown")
        return cap

    def _pace(self) -> None:
        if self.realtime and self.fps > 0:
            self._stop_event.wait(1.0 / self.fps)
