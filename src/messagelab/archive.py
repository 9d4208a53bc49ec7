"""Zip archive of generated documents."""
import io
import zipfile
from pathlib import Path
from typing import Optional, Union

from messagelab.core.models import GeneratedDocument


def archive_name(base_name: str) -> str:
    return f"{base_name}_generated.zip"


def write_archive(
    documents: list[GeneratedDocument],
    target: Optional[Union[str, Path]] = None,
) -> bytes:
    """Pack ``documents`` into a deflated zip archive.

    Args:
        documents: Named buffers, written in order
        target: Optional file path the archive is also written to

    Returns:
        The archive bytes
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for document in documents:
            archive.writestr(document.name, document.content)

    data = buffer.getvalue()
    if target is not None:
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return data
