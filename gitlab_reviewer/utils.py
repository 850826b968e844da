"""
Shared utility functions for the GitLab AI Code Reviewer.
"""

import re


DEV_NULL = "/dev/null"


def strip_diff_path_prefix(path: str) -> str:
    """Remove the ``a/`` or ``b/`` prefix git puts on diff header paths.

    Args:
        path: Path as it appears in a ``---``/``+++`` header

    Returns:
        The repository-relative path, or ``/dev/null`` unchanged
    """
    if not path:
        return ""
    path = path.split('\t', 1)[0].strip()
    if path.startswith(('a/', 'b/')):
        return path[2:]
    return path


def sanitize_text(text: str) -> str:
    """Sanitize comment text while preserving Markdown formatting.

    Args:
        text: The text to sanitize

    Returns:
        Text without control characters and with collapsed blank runs
    """
    if not text:
        return ""

    # Keep newlines and tabs, drop other control characters
    text = ''.join(char for char in text if ord(char) >= 32 or char in '\n\t')
    text = re.sub(r'\n{4,}', '\n\n\n', text)

    return text.strip()
