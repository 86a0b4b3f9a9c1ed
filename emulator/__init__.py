"""People count emulator that feeds the local people_counter API."""
