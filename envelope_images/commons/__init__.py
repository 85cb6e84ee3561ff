"""Commons package - settings, telemetry and storage backends."""
