"""Packaged infraction datasets, one file per network."""
