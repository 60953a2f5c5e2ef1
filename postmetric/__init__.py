"""PostMetric backend: X account linking and post metric sync."""
