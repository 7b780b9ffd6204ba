"""Shared constants used across the application."""

APP_NAME = "ManuMu Studio"

# Path the verification link points at; the query string carries the token
VERIFY_PATH = "/verify"

# Minimum password length enforced on sign-up and sign-in
PASSWORD_MIN_LENGTH = 8

# bcrypt ignores input beyond this many bytes and newer releases reject it
PASSWORD_MAX_BYTES = 72
