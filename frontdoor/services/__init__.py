"""Service clients used by the frontdoor SDK."""
