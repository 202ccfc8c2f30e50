from .session import NO_QUEUE_ID, CaptureState, FilterConfig, FilterSession

__all__ = [
    "NO_QUEUE_ID",
    "CaptureState",
    "FilterConfig",
    "FilterSession",
]
