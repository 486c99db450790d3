"""auth/ -- Accounts, credentials, session tokens and one-time codes for Authflow.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or notify/. api/ wires the mailer into
auth.verification.VerificationService at startup.
"""
