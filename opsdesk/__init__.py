"""OpsDesk back office."""
