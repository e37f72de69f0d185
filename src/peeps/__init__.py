"""Orchestration and convergence checks for private Ethereum test networks."""
