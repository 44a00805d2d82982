"""
Security package: authentication, authorization, sanitization, rate limiting and audit.
"""
