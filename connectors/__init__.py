"""
connectors — X (Twitter) OAuth integration.

Handles:
  • PKCE + state generation and the authorize URL
  • Callback handling (code → token exchange, profile lookup)
  • Per-user token storage, encrypted at rest (AES-256-GCM)
  • Status / disconnect
"""
