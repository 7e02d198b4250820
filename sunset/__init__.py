"""Sunset - content expiration for a lightweight async CMS."""
