"""
auth — Request authentication module.

Provides:
  • Session-token extraction from Authorization headers and cookies
  • Session-token signing & verification
  • ``get_current_user_id`` FastAPI dependency
"""
