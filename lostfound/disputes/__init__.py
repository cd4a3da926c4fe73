"""Multi-enterprise ownership disputes: voting panel, police findings and awards."""

from lostfound.disputes.panel import DisputePanel

__all__ = ["DisputePanel"]
