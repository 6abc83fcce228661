from .sources import ACCESS_HINT, check_access, ensure_readable, iter_lines, normalize_path, path_key, read_lines

__all__ = [
    "ACCESS_HINT",
    "check_access",
    "ensure_readable",
    "iter_lines",
    "normalize_path",
    "path_key",
    "read_lines",
]
