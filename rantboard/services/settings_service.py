"""
Settings service: per-user preferred name and contact preference.
"""

from typing import Any, Dict

from rantboard.config import get_limit
from rantboard.errors import AuthenticationRequiredError, ValidationError
from rantboard.models import Settings
from rantboard.services.common import board_session


def _empty_settings(user_id: str) -> Dict[str, Any]:
    return {"user_id": user_id, "preferred_name": "", "contact_me": "", "updated_at": None}


def validate_settings(preferred_name: str, contact_me: str) -> Dict[str, str]:
    """
    Field-level validation for a settings form.

    Returns:
        Cleaned {"preferred_name", "contact_me"}

    Raises:
        ValidationError carrying the submitted values
    """
    submitted = {"preferred_name": preferred_name or "", "contact_me": contact_me or ""}
    name = submitted["preferred_name"].strip()
    contact = submitted["contact_me"].strip()

    if not name:
        raise ValidationError("Preferred name can't be empty.", **submitted)

    name_limit = get_limit("preferred_name_max_length")
    if len(name) > name_limit:
        raise ValidationError(
            f"Preferred name is limited to {name_limit} characters.", **submitted
        )

    contact_limit = get_limit("contact_me_max_length")
    if len(contact) > contact_limit:
        raise ValidationError(
            f"Contact details are limited to {contact_limit} characters.", **submitted
        )

    return {"preferred_name": name, "contact_me": contact}


def get_settings(user_id: str) -> Dict[str, Any]:
    """
    Get a user's settings. Users who never saved any get empty values.

    Raises:
        AuthenticationRequiredError if user_id is empty
    """
    if not user_id:
        raise AuthenticationRequiredError("settings")

    with board_session() as session:
        row = session.get(Settings, user_id)
        return row.to_dict() if row else _empty_settings(user_id)


def has_settings(user_id: str) -> bool:
    """True once the user has saved settings at least once."""
    if not user_id:
        return False
    with board_session() as session:
        return session.get(Settings, user_id) is not None


def save_settings(user_id: str, preferred_name: str, contact_me: str) -> Dict[str, Any]:
    """
    Create or update a user's settings.

    Returns:
        The saved settings

    Raises:
        AuthenticationRequiredError if user_id is empty
        ValidationError if a field fails validation
    """
    if not user_id:
        raise AuthenticationRequiredError("settings")

    cleaned = validate_settings(preferred_name, contact_me)

    with board_session() as session:
        row = session.get(Settings, user_id)
        if row is None:
            row = Settings(user_id=user_id, **cleaned)
            session.add(row)
        else:
            row.preferred_name = cleaned["preferred_name"]
            row.contact_me = cleaned["contact_me"]
        session.commit()
        session.refresh(row)
        return row.to_dict()
