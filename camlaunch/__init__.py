"""Launch a Camlistore server on Google Compute Engine."""
