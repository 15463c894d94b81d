"""Face verification service for event rosters."""
