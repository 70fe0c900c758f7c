"""
Core modules for Refiner Gateway.

This package contains prompt selection, quota tracking, request routing
with provider fallback, and the app update check.
"""
