"""Inventory: the stock ledger, single source of truth for sellable units."""
