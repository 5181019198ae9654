"""Pure helpers: date formatting, grouping, journeys, map markers, trip lists."""
