from typing import Optional


def get_user_display_name(user: Optional[dict]) -> str:
    """Full name when set, otherwise the email address, otherwise ""."""
    if not user:
        return ""
    return (user.get("full_name") or "").strip() or user.get("email") or ""


def get_user_initials(user: Optional[dict]) -> str:
    """Up to two initials from the full name, else the email's first letter, else "U"."""
    parts = ((user or {}).get("full_name") or "").split()
    if parts:
        return "".join(part[0] for part in parts).upper()[:2]
    email = (user or {}).get("email")
    if email:
        return email[0].upper()
    return "U"
