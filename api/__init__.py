"""Local development stand-in for the people_counter data source."""
