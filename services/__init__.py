"""
services/ - Business Logic Layer
================================
Session state, the transaction store and the CSV export.
Handlers call into this layer; it never imports from handlers.
"""
