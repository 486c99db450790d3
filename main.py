#!/usr/bin/env python3
"""
Authflow -- email/password accounts with OTP email verification and password reset.

Usage:
  python main.py
  python main.py --port 4000
  python main.py --host 0.0.0.0 --port 8000
  python main.py --reload

Environment variables (or .env):
  JWT_SECRET      Session token signing key, at least 32 chars. Required unless DEBUG=true.
  DATABASE_URL    SQLAlchemy connection string. Default: sqlite:///authflow.db
  SMTP_USER       SMTP login used to send OTP emails.
  SMTP_PASS       SMTP password / app password.
  SENDER_EMAIL    From address on OTP emails.
  SEND_EMAILS     Set to false to build emails without delivering them.
  CORS_ORIGINS    Comma-separated frontend origins allowed to send the session cookie.
  SECURE_COOKIES  Set to true behind HTTPS (cookie becomes Secure; SameSite=None).
"""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Authflow -- account registration, login, and OTP verification API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=4000, help="Port to listen on (default: 4000)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
