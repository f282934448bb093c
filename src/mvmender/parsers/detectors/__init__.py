from .base import BaseDetector
from .registry import DetectorRegistry, register_detector

__all__ = ["BaseDetector", "DetectorRegistry", "register_detector"]
