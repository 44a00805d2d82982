"""
Business services for the treasury back office.
"""
