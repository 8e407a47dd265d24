"""
AI Content Detector - judges whether text, images, or video are AI-generated.

This package contains the complete application:
- core: Framework-agnostic detection logic
- infrastructure: External service integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
