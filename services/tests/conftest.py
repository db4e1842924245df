"""
Top-level test configuration for orgroles.
"""

import os

# Ensure test-friendly defaults
os.environ.setdefault("ORGROLES_CONFIG_FILE", "/nonexistent/orgroles/config.yaml")
os.environ.setdefault("ORGROLES_JSON_LOGS", "false")
os.environ.setdefault("ORGROLES_LOG_LEVEL", "DEBUG")
