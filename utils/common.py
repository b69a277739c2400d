# utils/common.py
"""Small helpers shared by config, the API layer and the ingestion facade"""
import hashlib
import re
import uuid
from pathlib import Path
from typing import Optional

# config.py imports this module, so nothing here may import settings

PROJECT_ROOT = Path(__file__).resolve().parent.parent

_MIME_BY_EXTENSION = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
    "md": "text/markdown",
}
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]")


# ============= Paths =============

def get_project_root() -> str:
    return str(PROJECT_ROOT)


def get_log_file_path(filename: str = "hr_rag.log") -> str:
    """Returns <root>/log/<filename>, creating the log directory on first use."""
    log_dir = PROJECT_ROOT / "log"
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / filename)


# ============= Uploads =============

def get_file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def validate_document_id(doc_id: str) -> bool:
    """Document ids are canonical UUID strings; anything else is rejected before lookup."""
    try:
        return str(uuid.UUID(doc_id)) == doc_id.lower()
    except (ValueError, AttributeError, TypeError):
        return False


def sanitize_filename(filename: str, max_length: int = 100) -> str:
    """Keeps word characters, dots and dashes of the last path component."""
    name = Path(filename.replace("\\", "/")).name
    return _UNSAFE_FILENAME_CHARS.sub("_", name)[:max_length]


def guess_mime_type(filename: str) -> Optional[str]:
    """Maps an upload's extension to one of the MIME types the extractors accept."""
    return _MIME_BY_EXTENSION.get(Path(filename).suffix[1:].lower())


def strip_extension(filename: str) -> str:
    # 'policy.pdf' -> 'policy', used as the default document title
    return Path(filename).stem or filename
