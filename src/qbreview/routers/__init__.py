from . import answers, backup, health, review

__all__ = ["answers", "backup", "health", "review"]
