"""
PredictOS command line tools.
"""
from .main import app

__all__ = ["app"]
