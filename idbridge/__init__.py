"""
idbridge - Identity Verification and Account Migration Service

Authenticates API requests against an identity provider's published
signing keys and migrates users from a legacy identity provider to the
new one without ever touching their passwords.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- auth: Signing-key retrieval and bearer token verification
- middleware: Request authentication boundary
- migration: Legacy token exchange, account provisioning and ledger
- accounts: Application account records
- storage: In-process storage primitives
- api: REST API models
"""

__version__ = "1.0.0"
