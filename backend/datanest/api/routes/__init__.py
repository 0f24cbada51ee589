"""Route Modules — one file per marketplace resource."""
