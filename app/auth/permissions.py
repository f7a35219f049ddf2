"""
Central registry of allowed actions per role.
"""
ROLE_SCOPES = {
    "customer": {"place_order", "cancel_order", "view_proof", "balance_debit", "balance_credit"},
    "vendor":   {"upload_proof", "add_tracking", "view_proof", "request_payout", "add_earnings"},
    "admin":    {"*"},
}

def role_has_scope(role: str, action: str) -> bool:
    scopes = ROLE_SCOPES.get(role, set())
    return "*" in scopes or action in scopes
