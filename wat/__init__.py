"""
WAT — What to Test

Learns which build/test commands are worth running after an edit.
This package generates the training data for that decision.
"""

__version__ = "0.3.0"
