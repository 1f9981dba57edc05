"""Services for orgpost."""
