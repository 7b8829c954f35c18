"""Traffic generation and delivery counting for network simulation."""
