"""
Core detection logic.

This module is framework-agnostic - it doesn't import FastAPI, the
Anthropic SDK, or FFmpeg. The sampling and parsing rules can be tested
in isolation.
"""
