"""Path helpers for files named by untrusted input."""

from pathlib import Path


def resolve_within(base_dir: Path, relative_path: str) -> Path | None:
    """
    Resolve a relative path inside a base directory.

    Args:
        base_dir: Directory the result must stay inside.
        relative_path: Name like 'eyebrow-1.png' or 'brows/left.png'.

    Returns:
        The joined path, or None if the name is empty, absolute or escapes base_dir.
    """
    if not relative_path or relative_path.startswith(("/", "\\")):
        return None

    # Prevent path traversal
    if ".." in Path(relative_path).parts:
        return None

    full_path = base_dir / relative_path

    # Ensure the path is within base_dir
    try:
        full_path.resolve().relative_to(base_dir.resolve())
    except ValueError:
        return None

    if full_path.resolve() == base_dir.resolve():
        return None

    return full_path
