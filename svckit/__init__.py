"""
svckit - logging and transaction helpers for backend services
"""
__version__ = "0.1.0"
