"""
Trading bot log monitor.

Tails the bot's log file, folds the events it finds into in-memory
aggregate state, and relays that state to live dashboard viewers.
"""

__version__ = "1.0.0"
__author__ = "Tim"
