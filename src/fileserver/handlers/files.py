"""
=============================================================================
FILE HANDLER
=============================================================================

Decides what a parsed request gets back and loads the file from disk.

=============================================================================
SERVABLE NAMES
=============================================================================

Only two shapes of path can ever be served:

    /file0.html  ..  /file9.html
    /image0.jpg  ..  /image9.jpg

The whole path must match; "/file12.html", "/file1.html.bak" and
"/../etc/passwd" are all rejected with 404 before the filesystem is
touched. A name that matches is looked up under the serving root with the
leading "/" stripped.

=============================================================================
DECISION ORDER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   path matches a servable name?                                      │
    │       no  ──────────────────────────────────────────────► 404        │
    │       yes                                                            │
    │        │                                                             │
    │   method?                                                            │
    │       POST / unrecognized ──────────────────────────────► 400        │
    │       GET / HEAD                                                     │
    │        │                                                             │
    │   file readable under the root?                                      │
    │       no  ──────────────────────────────────────────────► 404        │
    │       yes ──────────────────────────────────────────────► 200        │
    └─────────────────────────────────────────────────────────────────────┘

The path is checked before the method, so "POST /nope.txt" is a 404 and
"POST /file1.html" is a 400.

=============================================================================
"""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from ..core.result import ErrorKind, Result
from ..http.mime_types import get_mime_type
from ..http.request import HTTPRequest, Method
from ..http.response import HTTPResponse, bad_request, file_response, not_found


logger = logging.getLogger(__name__)


SERVABLE_PATH = re.compile(r"/(file[0-9]\.html|image[0-9]\.jpg)")


class FileHandler:
    """
    Serves fileN.html / imageN.jpg from a root directory.

    Usage:
        files = FileHandler("data")
        response = files.handle(request)
        include_body = request.method is Method.GET
    """

    def __init__(self, root_dir: Union[str, Path]):
        # Resolve once so the containment check in resolve() is meaningful
        self.root_dir = Path(root_dir).resolve()

    @property
    def root_exists(self) -> bool:
        """
        Whether the serving root is an existing directory.

        A missing root is not an error: every lookup simply ends in 404.
        """
        return self.root_dir.is_dir()

    @staticmethod
    def is_valid_filename(path: str) -> bool:
        """
        True if `path` is exactly one of the servable names.

            >>> FileHandler.is_valid_filename("/file1.html")
            True
            >>> FileHandler.is_valid_filename("/file12.html")
            False
        """
        return SERVABLE_PATH.fullmatch(path) is not None

    def resolve(self, path: str) -> Optional[Path]:
        """Map a request path to a file under the root, or None if it escapes."""
        full_path = (self.root_dir / path.lstrip("/")).resolve()
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {path}")
            return None
        return full_path

    def load(self, path: str) -> Result[bytes]:
        """
        Read the whole file for `path`.

        Any failure (missing, a directory, permission denied) is NOT_FOUND;
        the client is never told why.
        """
        full_path = self.resolve(path)
        if full_path is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"{path} is outside the serving root")

        logger.info(f"Attempting to give file: {full_path}")
        try:
            return Result.success(full_path.read_bytes())
        except OSError as e:
            logger.debug(f"Cannot read {full_path}: {e}")
            return Result.failure(ErrorKind.NOT_FOUND, f"{path}: {e.strerror or e}", e.errno)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Build the response for a parsed request."""
        if not self.is_valid_filename(request.path):
            logger.warning(f"Invalid filename requested: {request.path}")
            return not_found()

        if request.method is Method.POST:
            logger.info("POST is not supported")
            return bad_request()
        if request.method is Method.INVALID:
            logger.warning(f"Unsupported HTTP method: {request.raw_method}")
            return bad_request()

        logger.info(f"Processing {request.method.value} request: {request.path}")
        loaded = self.load(request.path)
        if not loaded:
            return not_found()

        return file_response(loaded.value, get_mime_type(request.path))
