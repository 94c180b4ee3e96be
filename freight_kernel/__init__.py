"""
Freight Kernel

Shared foundation for the freight ERP rule engine:
- Structured JSON logging
- Typed, coded exceptions
- Injectable clock and workflow value types
- SQLAlchemy declarative base and session management
"""

__version__ = "0.1.0"
