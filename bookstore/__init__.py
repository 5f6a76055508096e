"""Bookstore client core: catalog accessors, cart store and observable state."""
