"""
WINFIN Treasury - cash management back office for small and medium companies.
"""

__version__ = "1.0.0"
