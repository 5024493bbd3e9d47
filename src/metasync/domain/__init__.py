"""Domain layer: records, ports and the sync engine."""
