# exceptions.py
"""Custom exceptions for the operational query router."""


class RoutingError(Exception):
    """Base exception for routing system errors"""
    pass


class QueryProcessingError(RoutingError):
    """Raised when query processing fails"""
    pass


class ConfigurationError(RoutingError):
    """Raised when configuration is invalid"""
    pass


class DatabaseError(RoutingError):
    """Raised when database operations fail"""
    pass
