"""
Core modules for reve.

This package contains the core business logic for:
- Configuration management
- The retrying HTTP transport
- Request parameters and validation
- Image operations (create, edit, remix) and their results
"""
