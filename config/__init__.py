"""Settings loading and environment presets for Dev Services."""
