"""
Utils package
"""

from .dates import add_months, clamp_day, sunday_weekday, to_local_date

__all__ = [
    "add_months",
    "clamp_day",
    "sunday_weekday",
    "to_local_date",
]
