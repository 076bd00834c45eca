"""HTTP routers for the prompt engine."""
