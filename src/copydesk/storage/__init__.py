"""Storage tiers - the device-local JSON store and the remote HTTP store."""
