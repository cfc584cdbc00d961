"""
Helper functions for formatting data into human-readable strings.
"""


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_speed(bytes_per_second: int) -> str:
    """Formats a transfer rate, e.g. '1.2 MB/s'; zero is shown as '-'."""
    if bytes_per_second <= 0:
        return "-"
    return f"{format_size(bytes_per_second)}/s"


def format_progress(progress: float) -> str:
    """Formats a 0-1 progress ratio as a percentage with one decimal."""
    return f"{max(0.0, min(progress, 1.0)) * 100:.1f}%"
