from pathlib import Path

from medref.documents.models import ExternalPathRef
from medref.exceptions import DocumentUnavailableError


def legacy_file_path(files_root: Path, reference: str) -> Path:
    """Resolve a stored reference like ``/uploads/official-documents/x.pdf`` under files_root."""
    return files_root / reference.lstrip("/")


class LegacyFileLoader:
    """Reads the bytes behind a legacy ``filePath`` reference."""

    FILES_ROOT = Path("/app/uploads")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def load(self, reference: ExternalPathRef) -> bytes:
        """Read legacy document bytes from disk.

        Raises:
            DocumentUnavailableError: if the path escapes the files root, does
                not exist, or cannot be read.
        """
        path = self._resolve_path(reference)
        if not path.is_file():
            raise DocumentUnavailableError(f"File not found: {reference.path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise DocumentUnavailableError(
                f"File could not be read: {reference.path}"
            ) from exc

    def _resolve_path(self, reference: ExternalPathRef) -> Path:
        root = self._files_root.resolve()
        path = legacy_file_path(root, reference.path).resolve()
        if not path.is_relative_to(root):
            raise DocumentUnavailableError(
                f"File path escapes storage root: {reference.path}"
            )
        return path
