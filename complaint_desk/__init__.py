"""Complaint lifecycle and fulfillment service."""
