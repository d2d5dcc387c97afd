"""
Scheduling Domain

Calendar arithmetic for recurring service passages: a passage is a
(week of month, weekday) rule such as "3rd Wednesday" or "last Friday".
"""
