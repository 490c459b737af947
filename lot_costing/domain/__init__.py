"""Lot ledger domain: movements, lots, allocation, replay and valuation."""
