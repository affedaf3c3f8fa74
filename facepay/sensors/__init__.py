"""Camera access for the verification preview."""
from .camera import CameraCapability, MediaHandle, OpenCVCamera, VideoStream

__all__ = ["CameraCapability", "MediaHandle", "OpenCVCamera", "VideoStream"]
