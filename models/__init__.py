"""
models/ - Domain Models
=======================
Plain dataclasses shared by every layer. No I/O happens here.
"""
