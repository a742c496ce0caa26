"""Local filesystem file store.

Files are written under <root>/<document_id>/ with a random prefix so a
re-upload never overwrites the previous content in place.
"""

import re
import uuid
from pathlib import Path

from ..domain.documents.models import StoredFileRef
from ..domain.documents.ports import FileStorePort
from ..observability.logging_config import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    """Strip directory components and unsafe characters from a client filename.

    Example:
        >>> safe_filename("../../etc/passwd")
        'passwd'
        >>> safe_filename("MT 12/2024.pdf")
        '2024.pdf'
    """
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "file"


class LocalFileStore(FileStorePort):
    """FileStorePort writing to a local directory.

    Args:
        root: Base directory for uploads
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def store(self, document_id: int, slot_index: int, filename: str, content: bytes) -> StoredFileRef:
        relative = Path(str(document_id)) / f"{slot_index}_{uuid.uuid4().hex[:12]}_{safe_filename(filename)}"
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.debug(f"Stored {len(content)} bytes at {relative}", extra={"document_id": document_id})
        return StoredFileRef(
            storage_ref=relative.as_posix(),
            original_filename=filename,
            size_bytes=len(content),
        )

    def delete(self, storage_ref: str) -> None:
        target = self.root / storage_ref
        if self.root.resolve() not in target.resolve().parents:
            raise ValueError(f"Storage reference outside upload root: {storage_ref}")
        target.unlink(missing_ok=True)
