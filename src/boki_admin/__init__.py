"""BOKI back-office API."""
