"""
auth — User authentication module.

Provides:
  • Signed token issue & verification (HMAC-SHA256, URL-safe segments)
  • Password hashing (PBKDF2-SHA512 with per-user salt)
  • Signup / Login / Me API routes
  • ``get_current_identity`` / ``require_admin`` FastAPI dependencies
"""
