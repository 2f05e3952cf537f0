"""
Cross-cutting utilities for Media Radio.

Contains:
- volume: percent <-> decibel conversions
"""
