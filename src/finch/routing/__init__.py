"""Routing: path patterns, per-method route tables and dispatch.

Routes are registered during setup and matched in registration order;
the first match wins and may hand control to later routes through its
continuation.
"""
