"""
WBTrade checkout core

Multi-package shipping allocation and checkout orchestration: groups a cart
into warehouse packages, tracks per-package shipping choices, splits locker
shipments across slots and builds the order submission.
"""
__version__ = "1.0.0"
