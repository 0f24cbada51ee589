"""DataNest — dataset marketplace backend."""
