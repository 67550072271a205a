"""Format extractor implementations and their shared contract."""

from .base import DocumentExtractor
from .chm_extractor import ChmExtractor
from .docx_extractor import DocxExtractor
from .epub_extractor import EpubExtractor
from .fb2_extractor import Fb2Extractor
from .html_extractor import HtmlExtractor
from .markdown_extractor import MarkdownExtractor
from .odt_extractor import OdtExtractor
from .pdf_extractor import PdfExtractor
from .txt_extractor import TextExtractor


def build_default_extractors() -> tuple[DocumentExtractor, ...]:
    """Return the closed extractor set in registration order.

    Extension sets are disjoint; dispatch picks the first match.
    """
    return (
        EpubExtractor(),
        DocxExtractor(),
        OdtExtractor(),
        Fb2Extractor(),
        ChmExtractor(),
        PdfExtractor(),
        MarkdownExtractor(),
        HtmlExtractor(),
        TextExtractor(),
    )


__all__ = [
    "DocumentExtractor",
    "ChmExtractor",
    "DocxExtractor",
    "EpubExtractor",
    "Fb2Extractor",
    "HtmlExtractor",
    "MarkdownExtractor",
    "OdtExtractor",
    "PdfExtractor",
    "TextExtractor",
    "build_default_extractors",
]
