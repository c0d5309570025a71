"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings) and environment validation
- Logging configuration with request context
- Password hashing and JWT helpers
- Date range helpers
- Dependency helpers (current user, role and tier guards)
"""
