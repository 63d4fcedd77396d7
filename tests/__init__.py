"""
Test suite for the Health Assistant backend.

Contains unit and integration tests for appointment confirmation,
checkout, and the conversational assistant.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
