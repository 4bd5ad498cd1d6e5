"""Derivation engine for the patient vitals dashboard.

This package holds the classification, query and aggregation logic every
dashboard view recomputes from the shared patient and alert snapshots,
isolated from rendering and transport so it stays easy to test and reason about.
"""
