"""Shared domain logic for the BOKI storefront, kiosk and back-office."""
