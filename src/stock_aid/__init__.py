"""
stock-aid: Crowd-sourced stock availability for physical stores.

Merges availability reports from many shoppers into one record per item
and ranks the results by distance to the person asking.
"""

__version__ = "0.1.0"
