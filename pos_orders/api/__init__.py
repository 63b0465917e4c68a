"""
HTTP routers for orders and tenant features
"""
