"""Authentication primitives.

Learn: Everything here is store-agnostic:
1. password → bcrypt hashing (with legacy MD5 verification)
2. ticket → signed, time-bounded JWT asserting a username
3. identity → anonymous/named identities and the Principal value
4. resolver → ticket + store lookup → Principal for one request
"""
