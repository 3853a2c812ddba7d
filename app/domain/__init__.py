"""
app/domain package marker.
"""

from app.domain.esg_records import AttendanceRow, MoneyAmount

__all__ = [
    "AttendanceRow",
    "MoneyAmount",
]
