"""
Core utilities and configuration for sitedeploy.

This package provides core functionality including logging configuration,
database setup, value encryption and other shared utilities.
"""

from sitedeploy.core.logging_config import get_build_logger, get_logger, setup_logging

__all__ = ["get_build_logger", "get_logger", "setup_logging"]
