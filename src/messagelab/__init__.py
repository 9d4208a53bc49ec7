# messagelab - Template-based generator of synthetic XML, JSON and CSV documents
from messagelab.generators import GenerationService, generate_documents
from messagelab.parsers import detect_format, parse_document
from messagelab.session import TemplateSession

__version__ = "0.1.0"

__all__ = [
    "GenerationService",
    "TemplateSession",
    "detect_format",
    "generate_documents",
    "parse_document",
]
