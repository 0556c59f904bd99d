"""
security/ - Handler Middleware
==============================
Decorators that guard Telegram handlers (whitelist, rate limiting).
"""
