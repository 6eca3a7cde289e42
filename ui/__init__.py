"""HTTP surface for DailyFocus."""
