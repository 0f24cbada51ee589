"""Environment for the whole suite: no live Stripe or email, fixed JWT secret."""

import os

for key, value in {
    "STRIPE_API_KEY": "",
    "EMAIL_API_KEY": "",
    "JWT_SECRET": "test-secret",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
}.items():
    os.environ.setdefault(key, value)
