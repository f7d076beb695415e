"""catexam: computerized adaptive test engine."""
