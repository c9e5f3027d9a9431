"""Commons package - settings, telemetry and storage adapters."""
