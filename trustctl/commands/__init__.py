"""trustctl command groups."""
