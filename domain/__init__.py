"""Pure domain model for the discount wheel: no I/O, no frameworks."""
