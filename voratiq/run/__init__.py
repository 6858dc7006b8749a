"""Run engine: per-agent pipeline, coordinator, records and reports."""
