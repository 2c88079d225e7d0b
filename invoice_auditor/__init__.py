"""Invoice audit pipeline: contract vs. invoice reconciliation with an AI model"""

__version__ = "0.1.0"
