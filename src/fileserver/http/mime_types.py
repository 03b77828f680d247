"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent with a file.

Only two kinds of file can ever be requested (fileN.html and imageN.jpg),
but the lookup is by extension, so anything else that ends up being served
falls back to application/octet-stream ("unknown binary data").

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("file1.html")
        'text/html'

        >>> get_mime_type("/data/image3.JPG")
        'image/jpeg'

        >>> get_mime_type("notes.txt")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()  # .JPG → .jpg
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)
