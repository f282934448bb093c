"""
Mvmender DETECTOR REGISTRY
--------------------------
This module implements the Registry pattern for managing issue detectors.
It provides a central point to register, discover, and retrieve every
active corruption check.

Metadata:
    - Component: Detector Registry
    - Author: Mvmender Team
    - Pattern: Singleton / Registry
"""

import logging
from typing import Dict, Type, List
from mvmender.parsers.detectors.base import BaseDetector

logger = logging.getLogger("mvmender.detectors.registry")


class DetectorRegistry:
    """
    Singleton registry to manage available detectors.
    Core detectors register themselves here; the parse check always runs last.
    """

    _detectors: Dict[str, Type[BaseDetector]] = {}
    _instances: Dict[str, BaseDetector] = {}

    @classmethod
    def register(cls, detector_cls: Type[BaseDetector]):
        """
        Decorator to register a new detector class.

        Usage:
            @DetectorRegistry.register
            class MyDetector(BaseDetector):
                ...
        """
        cls._detectors[detector_cls.__name__] = detector_cls
        logger.debug(f"Registered detector: {detector_cls.__name__}")
        return detector_cls

    @classmethod
    def register_defaults(cls):
        """
        Explicitly loads and registers the core detectors.
        This avoids relying on import side-effects.
        """
        from mvmender.parsers.detectors.structure import (
            LeadingGarbageDetector,
            MissingCommaDetector,
            UnbalancedBracketDetector,
        )
        from mvmender.parsers.detectors.strings import (
            UnescapedQuoteDetector,
            ControlCharacterDetector,
        )
        from mvmender.parsers.detectors.modern_syntax import ModernSyntaxDetector, MissingSemicolonDetector
        from mvmender.parsers.detectors.validity import InvalidJsonDetector

        for detector_cls in (
            LeadingGarbageDetector,
            MissingCommaDetector,
            UnescapedQuoteDetector,
            ControlCharacterDetector,
            ModernSyntaxDetector,
            MissingSemicolonDetector,
            UnbalancedBracketDetector,
            InvalidJsonDetector,
        ):
            cls.register(detector_cls)

        logger.debug(f"Registered {len(cls._detectors)} default detectors")

    @classmethod
    def get_all_detectors(cls) -> List[BaseDetector]:
        """
        Returns instantiated detectors ready for execution.
        Auto-discovers the defaults if the registry is empty.
        """
        if not cls._detectors:
            cls.register_defaults()

        active = []
        for class_name, detector_cls in cls._detectors.items():
            if class_name not in cls._instances:
                cls._instances[class_name] = detector_cls()
            active.append(cls._instances[class_name])

        # The parse check reports what every other detector missed
        active.sort(key=lambda d: d.name == "invalid_json")
        return active

    @classmethod
    def clear(cls):
        """Resets the registry (useful for tests)."""
        cls._detectors = {}
        cls._instances = {}


register_detector = DetectorRegistry.register
