"""
capflow: capture-to-task pipeline for ADHD-friendly task management.
"""

__version__ = "0.1.0"
