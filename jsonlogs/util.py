import hashlib


def hash_region(file_handle, start: int, length: int) -> str:
    """sha256 hex digest of ``length`` bytes read from ``start``"""
    file_hash = hashlib.sha256()
    file_handle.seek(start)
    remaining = length
    while remaining > 0:
        file_bytes = file_handle.read(min(remaining, 65536))
        if not file_bytes:
            break  # End of file
        file_hash.update(file_bytes)
        remaining -= len(file_bytes)
    return file_hash.hexdigest()
