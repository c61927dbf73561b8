"""Headless LinkStack client: list reconciliation, forms, toasts and preferences."""
