"""
SmartCal – university timetable aggregator, filter and conflict checker.
"""
