"""UI adapters for hosting the engine."""
