"""Access control for the document workspace."""

from ground_truth_curator.auth.gate import verify_access

__all__ = ["verify_access"]
