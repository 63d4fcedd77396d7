"""
Health Assistant

A FastAPI backend for a consumer health assistant: a conversational
assistant and paid appointment booking with exactly-once confirmation.
"""

__version__ = "1.0.0"
