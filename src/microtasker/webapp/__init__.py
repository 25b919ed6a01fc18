"""Web API for MicroTasker."""
