"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    from fileserver.handlers import FileHandler

    files = FileHandler("data")
    response = files.handle(request)   # 200, 400 or 404

=============================================================================
"""

from .files import SERVABLE_PATH, FileHandler

__all__ = [
    "FileHandler",
    "SERVABLE_PATH",
]
