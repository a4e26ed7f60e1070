"""Split raw audio bytes into size-bounded chunks."""

MB = 1024 * 1024


def split_into_chunks(buffer: bytes, chunk_size_bytes: int) -> list[bytes]:
    """Return contiguous slices of at most `chunk_size_bytes`, in order.

    A buffer at or under the threshold (empty included) comes back as a single
    chunk. Byte-level splitting does not respect audio frame boundaries.
    """
    if chunk_size_bytes <= 0:
        raise ValueError(f"chunk_size_bytes must be positive, got {chunk_size_bytes}")
    if len(buffer) <= chunk_size_bytes:
        return [buffer]
    return [buffer[offset:offset + chunk_size_bytes] for offset in range(0, len(buffer), chunk_size_bytes)]
