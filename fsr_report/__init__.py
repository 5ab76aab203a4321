"""
FSR Report - field service report assembly and PDF rendering.

Turns field-service-call data into a bound HTML report, rasterizes it to
PDF with Playwright/Chromium and persists the result to object storage.
"""

__version__ = "0.1.0"
