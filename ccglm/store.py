# CCGLM JSON Store
# Read, validate and atomically replace the settings document

import json
from pathlib import Path
from typing import Any

from ccglm.errors import InvalidJsonError, SettingsFileError
from ccglm.utils.paths import atomic_write

SettingsDocument = dict[str, Any]


def is_empty_or_missing(path: Path) -> bool:
    """Check whether ``path`` is absent or has zero length."""
    return not path.is_file() or path.stat().st_size == 0


def _unreadable(path: Path, error: OSError) -> SettingsFileError:
    return SettingsFileError(
        f"Cannot read {path}: {error.strerror or error}",
        hint="Check that the file and its directory are readable by you.",
    )


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise _unreadable(path, e) from e


def validate(path: Path) -> None:
    """
    Check that a file exists, is non-empty and parses as JSON.

    Side-effect free.

    Args:
        path: File to check.

    Raises:
        SettingsFileError: If the file is missing, empty, not a regular file or unreadable.
        InvalidJsonError: If the content is not valid JSON.
    """
    try:
        not_a_file = path.exists() and not path.is_file()
        empty_or_missing = is_empty_or_missing(path)
    except OSError as e:
        raise _unreadable(path, e) from e

    if not_a_file:
        raise SettingsFileError(
            f"Settings path is not a file: {path}",
            hint="Point settings_path (or CCGLM_SETTINGS_PATH) at the settings.json file.",
        )
    if empty_or_missing:
        raise SettingsFileError(
            f"Settings file is empty or missing: {path}",
            hint="Run the client once to create it, or restore a backup with 'ccglm restore'.",
        )

    try:
        json.loads(_read_text(path))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidJsonError(f"Invalid JSON in {path}: {e}") from e


def read(path: Path) -> SettingsDocument:
    """
    Read the settings document.

    Args:
        path: Settings file, already checked with :func:`validate`.

    Returns:
        Parsed JSON object.

    Raises:
        SettingsFileError: If the file cannot be read.
        InvalidJsonError: If the content is not a JSON object.
    """
    try:
        data = json.loads(_read_text(path))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidJsonError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidJsonError(f"JSON root is not an object in {path}")

    return data


def serialize(doc: SettingsDocument) -> str:
    """
    Serialize a document and prove it parses back.

    Args:
        doc: Document to serialize.

    Returns:
        Pretty-printed JSON text with trailing newline.

    Raises:
        InvalidJsonError: If the document cannot be represented as strict JSON.
    """
    try:
        content = json.dumps(doc, indent=2, ensure_ascii=False, allow_nan=False) + "\n"
        json.loads(content)
    except (TypeError, ValueError) as e:
        raise InvalidJsonError(f"Document is not valid JSON: {e}") from e
    return content


def validate_document(doc: SettingsDocument) -> None:
    """Raise InvalidJsonError unless ``doc`` is a JSON object that serializes cleanly."""
    if not isinstance(doc, dict):
        raise InvalidJsonError("Document root is not a JSON object")
    serialize(doc)


def write_atomic(path: Path, doc: SettingsDocument) -> None:
    """
    Serialize ``doc`` and atomically replace ``path`` with it.

    The document is validated before anything touches the filesystem.

    Args:
        path: Target file.
        doc: Document to write.

    Raises:
        InvalidJsonError: If the document cannot be serialized.
        SettingsFileError: If the file cannot be written.
    """
    content = serialize(doc)
    try:
        atomic_write(path, content)
    except OSError as e:
        raise SettingsFileError(
            f"Failed to write {path}: {e.strerror or e}",
            hint="Check free disk space and that the settings directory is writable. The previous file is unchanged.",
        ) from e
