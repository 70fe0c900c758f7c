"""
Refiner Gateway - AI backend for a smart keyboard.

Refines typed text and answers chat commands through Gemini with a Groq
fallback, enforcing a daily free-tier quota per device.
"""

__version__ = "1.0.0"
