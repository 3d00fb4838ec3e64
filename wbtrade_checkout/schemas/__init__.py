"""
Wire schemas for the shipping options and order APIs
"""
