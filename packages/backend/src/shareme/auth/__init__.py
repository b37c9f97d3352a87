"""Authentication and authorization.

Learn: Three pieces, leaves first:
1. jwt.TokenEngine — signs and verifies stateless access tokens
2. gate.AuthenticationGate — turns an Authorization header into an Identity
3. policy — pure owner/member/author decisions over projects, tasks, notes

Password hashing lives in password.py; the reset flow is a service
(services/password_reset.py) because it mutates user records.
"""
