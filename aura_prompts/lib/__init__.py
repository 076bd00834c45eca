"""Library modules for the Aura prompt engine."""
