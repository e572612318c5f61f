from careerhub.job_import.extractors.ai import AIExtractionResult, AIExtractor, OpenAIJobExtractor
from careerhub.job_import.extractors.basic import basic_extract
from careerhub.job_import.extractors.heuristic import apply_heuristics
from careerhub.job_import.extractors.structured import extract_structured

__all__ = [
    "AIExtractionResult",
    "AIExtractor",
    "OpenAIJobExtractor",
    "apply_heuristics",
    "basic_extract",
    "extract_structured",
]
