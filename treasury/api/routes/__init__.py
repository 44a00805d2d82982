"""
Resource routers mounted under ``/api``.
"""
