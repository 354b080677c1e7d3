"""RQ jobs for the delivery service."""
