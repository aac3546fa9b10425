import base64
import mimetypes
from pathlib import Path

from hybridchat.models import Attachment

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(path: str | Path) -> str:
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type or DEFAULT_MIME_TYPE


def load_attachment(path: str | Path) -> Attachment:
    """Read a file into a base64 attachment. Raises OSError if unreadable."""
    file_path = Path(path).expanduser()
    data = base64.b64encode(file_path.read_bytes()).decode("ascii")
    return Attachment(name=file_path.name, mime_type=guess_mime_type(file_path), data=data)
