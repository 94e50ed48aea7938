"""Usage profile configuration loading."""
