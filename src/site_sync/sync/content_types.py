"""Content-Type lookup by file extension."""

from typing import Dict, Mapping, Optional

DEFAULT_CONTENT_TYPE = "binary/octet-stream"

# Fixed table, independent of the host mimetypes registry
CONTENT_TYPES: Dict[str, str] = {
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "mjs": "application/javascript",
    "json": "application/json",
    "map": "application/json",
    "webmanifest": "application/manifest+json",
    "xml": "application/xml",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "svg": "image/svg+xml",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "avif": "image/avif",
    "ico": "image/x-icon",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "eot": "application/vnd.ms-fontobject",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "wasm": "application/wasm",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
}


class ContentTyper:
    """Maps a relative path to a MIME type by its last extension segment."""

    def __init__(self, extra: Optional[Mapping[str, str]] = None):
        self.mapping = dict(CONTENT_TYPES)
        if extra:
            self.mapping.update({ext.lstrip("."): mime for ext, mime in extra.items()})

    def classify(self, relative_path: str) -> str:
        name = relative_path.rsplit("/", 1)[-1]
        # "README" and ".htaccess" have no extension segment
        stem, dot, ext = name.rpartition(".")
        if not dot or not stem or not ext:
            return DEFAULT_CONTENT_TYPE
        return self.mapping.get(ext, DEFAULT_CONTENT_TYPE)
