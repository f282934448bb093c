# Mvmender Package Initialization
from mvmender.models import RawDocument, RepairResult

__version__ = "0.1.0"

_default_pipeline = None


def repair(raw_text: str, origin: str = "<memory>") -> RepairResult:
    """Repairs one document with the default options."""
    global _default_pipeline
    if _default_pipeline is None:
        from mvmender.core.pipeline import RepairPipeline
        _default_pipeline = RepairPipeline()
    return _default_pipeline.repair(raw_text, origin=origin)


__all__ = ["repair", "RawDocument", "RepairResult", "__version__"]
