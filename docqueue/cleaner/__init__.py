"""
Cleaner module.
Contains the periodic sweep that removes finished and exhausted jobs.
"""

from docqueue.cleaner.main import Cleaner, run

__all__ = ["Cleaner", "run"]
