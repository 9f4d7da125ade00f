"""Low-level clients used by the provider adapters."""
