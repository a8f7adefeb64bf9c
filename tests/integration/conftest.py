"""
Pytest configuration for integration tests.

Loads .env file so tests can reach the live API with a real key.
"""

from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env file before tests run."""
    load_dotenv()
