"""Visit map: door-to-door visit outcomes recorded per street address."""
