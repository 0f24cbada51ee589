"""Infrastructure — adapters for the database, payment gateway, blob store, email and tokens."""
