# util/functions.py
import hashlib


def sha256_hex(data: bytes) -> str:
    """SHA-256 over raw bytes, hex-encoded."""
    return hashlib.sha256(data).hexdigest()


def file_extension(filename: str) -> str:
    """
    - Lower-cased extension without the dot.
    - Empty string when there is no extension or the name ends with a dot.
    """
    idx = filename.rfind(".")
    if idx == -1 or idx == len(filename) - 1:
        return ""
    return filename[idx + 1 :].lower()


def split_keywords(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [k.strip() for k in raw.split(",") if k.strip()]


def as_str(value: bytes | str | None) -> str | None:
    """Redis hands back bytes (decode_responses=False); normalise to str."""
    if value is None:
        return None
    return value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else str(value)
