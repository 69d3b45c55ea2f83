"""
Operational helpers (logging setup).
"""
