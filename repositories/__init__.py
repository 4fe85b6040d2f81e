"""History store contract and backings."""
