"""Recording pipeline services."""
