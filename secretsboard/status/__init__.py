from secretsboard.status.classifier import StatusBadge, classify

__all__ = ["StatusBadge", "classify"]
