"""
Multi-tenant POS order lifecycle and pricing engine
"""

__version__ = "1.0.0"
