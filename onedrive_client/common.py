from urllib.parse import quote

RESTRICTED_CHARS = frozenset('\\/:*?"<>|#%')


def _enc(name: str) -> str:
    return quote(name, safe="")


def valid_filename(name: str) -> bool:
    return bool(name) and not any(c in RESTRICTED_CHARS for c in name)


def ensure_valid_filename(name: str) -> str:
    if not valid_filename(name):
        raise ValueError(f"Filename contains characters OneDrive does not allow: {name!r}")
    return name


def stream_length(stream) -> int:
    """Remaining bytes in a seekable stream, measured from its current position."""
    start = stream.tell()
    end = stream.seek(0, 2)
    stream.seek(start)
    return end - start
