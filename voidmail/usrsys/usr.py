"""This module contains definitions about users and the rules to check user details.
"""
import re
from dataclasses import dataclass
from typing import List

EMAIL_DOMAIN = "voidmail.com"

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@voidmail\.com$")
"""Only addresses on `EMAIL_DOMAIN` could be registered."""

PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)
"""At least 8 characters, with one lowercase letter, one uppercase letter, one digit and one of `@$!%*?&`."""

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50


@dataclass
class UserRecord(object):
    """Infomation about user.

    Attributes:
        id: `str`. A random identity assigned on registration, see `uuid.uuid4`.
        first_name: `str`.
        last_name: `str`.
        email: `str`. Unique identity, the key of the user table.
        password_hash: `str`. Salted password hash in base64. See `voidmail.utils.asec.password_hashing`.
        salt: `str`. The salt in base64, owned by this user only.
        logged_in: `bool`. The session flag.
    """

    id: str
    first_name: str
    last_name: str
    email: str
    password_hash: str
    salt: str
    logged_in: bool = False


def check_name(name: str, label: str) -> List[str]:
    if not name or not name.strip():
        return ["{} must not be blank".format(label)]
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        return [
            "{} must be between {} and {} characters".format(
                label, NAME_MIN_LENGTH, NAME_MAX_LENGTH
            )
        ]
    return []


def check_user_details(
    first_name: str, last_name: str, email: str, password: str
) -> List[str]:
    """Check the details for a new user. Return all the problems found, an empty list means the details are valid."""
    problems = []
    problems.extend(check_name(first_name, "First name"))
    problems.extend(check_name(last_name, "Last name"))
    if not email or not email.strip():
        problems.append("Email must not be blank")
    elif not EMAIL_PATTERN.fullmatch(email):
        problems.append("Email must be a valid {} address".format(EMAIL_DOMAIN))
    if not password or not password.strip():
        problems.append("Password must not be blank")
    elif not PASSWORD_PATTERN.fullmatch(password):
        problems.append(
            "Password must be at least 8 characters long, include one uppercase letter, one lowercase letter, one number, and one special character"
        )
    return problems
