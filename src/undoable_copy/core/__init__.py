"""Core two-phase copy step, request context, and typed errors."""
