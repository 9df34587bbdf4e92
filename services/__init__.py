"""Clients for external providers: naming, yield sources, routing, chains."""
