"""
Report Service - HTTP layer for field service report generation.

Run with: uvicorn report_service.app:app
"""
