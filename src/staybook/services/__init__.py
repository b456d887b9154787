"""
staybook.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Enforce ownership, role and state-machine rules.
- Orchestrate calls across repositories and integration clients (Stripe, FCM, storage).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with fake clients/sessions.
