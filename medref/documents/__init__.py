from medref.documents.codec import DocumentCodec, build_codec
from medref.documents.file_loader import LegacyFileLoader
from medref.documents.models import (
    DocumentRecord,
    ExternalPathRef,
    InlinePayload,
    UploadedFile,
)

__all__ = [
    "DocumentCodec",
    "DocumentRecord",
    "ExternalPathRef",
    "InlinePayload",
    "LegacyFileLoader",
    "UploadedFile",
    "build_codec",
]
