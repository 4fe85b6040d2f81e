"""Use cases and collaborators for the discount wheel."""
