"""Cached, rate-limited JSDoc generation for TypeScript projects."""

__version__ = "0.1.0"
