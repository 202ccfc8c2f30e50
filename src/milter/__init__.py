from .processor import build_runner, process

__all__ = [
    "build_runner",
    "process",
]
