"""Presentation helpers shared by the skills."""
