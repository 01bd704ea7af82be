"""
Bounded reads of multipart uploads.
"""
import logging

from fastapi import UploadFile

from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


def size_limit_message(label: str, max_bytes: int) -> str:
    return f"Ukuran {label} maksimal {max_bytes // (1024 * 1024)}MB."


async def read_upload(upload: UploadFile, max_bytes: int, label: str = "gambar") -> bytes:
    """
    Read an upload, refusing anything over max_bytes.

    At most max_bytes + 1 bytes are ever pulled into memory; the declared
    size is checked first when the client sent one.

    Raises:
        ValidationError: the upload is larger than max_bytes
    """
    declared = getattr(upload, "size", None)
    if declared is not None and declared > max_bytes:
        logger.info(f"🚫 [UPLOAD] Rejected {upload.filename}: declared {declared} bytes > {max_bytes}")
        raise ValidationError(size_limit_message(label, max_bytes), field_errors={"file": ["too_large"]})

    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        logger.info(f"🚫 [UPLOAD] Rejected {upload.filename}: more than {max_bytes} bytes")
        raise ValidationError(size_limit_message(label, max_bytes), field_errors={"file": ["too_large"]})
    return data
