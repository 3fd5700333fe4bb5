"""SimpleSecurity — minimal forms-based authentication provider.

One user table, a signed session ticket carried in a cookie, and a
principal (identity + roles) resolved fresh for every request.
"""

__version__ = "0.1.0"
