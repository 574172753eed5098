"""Box game demos: plain replication, interpolation and owner prediction."""

__all__ = ["common", "interpolated", "owner_predicted"]