from .from_address import decode_from

__all__ = [
    "decode_from",
]
