"""
Format Detector

Chooses the line grammar for an uploaded statement from its file name and
content signature.
"""
from typing import Optional, Tuple, Union

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import StatementFormat
from .base import decode_content
from .config.layout import StatementLayout
from .config.registry import LayoutRegistry, SPREADSHEET_EXTENSIONS, file_extension
from .exceptions import UnsupportedFormatError

logger = get_logger(__name__)


def detect_format(file_name: str, content: Union[bytes, str],
                  registry: Optional[LayoutRegistry] = None) -> Tuple[StatementFormat, StatementLayout]:
    """
    Classify a statement file.

    Args:
        file_name: Original file name (the extension takes part in the decision)
        content: Raw bytes or already decoded text
        registry: Layout registry; the packaged layouts when omitted

    Returns:
        (format, layout) for the grammar that reads the file

    Raises:
        UnsupportedFormatError: when no grammar applies
    """
    registry = registry or LayoutRegistry()

    text = None
    if file_extension(file_name) not in SPREADSHEET_EXTENSIONS:
        text = decode_content(content)

    layout = registry.detect(file_name, text)
    if layout is None:
        logger.warning("Statement format not recognized.", file_name=file_name)
        raise UnsupportedFormatError(
            "No transactions recognized: unsupported statement format",
            filename=file_name,
            sample_text=(text or '')[:200] or None,
        )

    logger.info(f"Statement format: {layout.format.value}", file_name=file_name, layout=layout.name)
    return layout.format, layout
