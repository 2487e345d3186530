"""Domain services: the live session engine and the quiz source it reads.

Imported by socket handlers and HTTP routes, keeping transport concerns
separated from session mechanics.
"""
